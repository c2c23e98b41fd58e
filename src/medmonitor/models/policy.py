"""Durable storage for authorization rules.

One row per (role, resource-pattern, action-pattern) triple. ``ptype`` is
always ``"p"``; it is kept so the table can later hold other rule kinds
without a schema change.
"""
from __future__ import annotations

from sqlalchemy import Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ..db.session import Base


class PolicyRule(Base):
    __tablename__ = "policy_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ptype: Mapped[str] = mapped_column(String(8), nullable=False, default="p")
    role: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    resource: Mapped[str] = mapped_column(String(255), nullable=False)
    action: Mapped[str] = mapped_column(String(255), nullable=False)

    __table_args__ = (
        UniqueConstraint("ptype", "role", "resource", "action", name="uq_policy_rules_triple"),
    )

    def __repr__(self) -> str:
        return f"<PolicyRule({self.role}, {self.resource}, {self.action})>"
