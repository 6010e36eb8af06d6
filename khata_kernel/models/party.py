"""
Module: khata_kernel.models.party
Responsibility: ORM persistence for the vendor's customers and suppliers.
    The ledger core only needs them as reference targets; their CRUD
    lifecycle is owned elsewhere.
Architecture position: Kernel > Models.  May import from db/ and domain/
    value objects only.

Invariants enforced:
    - Every party belongs to exactly one vendor.
    - party_kind is set at creation and never changes; it decides whether
      the party is referenced through customer_id or supplier_id.
"""

from uuid import UUID

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from khata_kernel.db.base import TrackedBase, UUIDString
from khata_kernel.domain.dtos import PartyInfo
from khata_kernel.domain.values import PartyKind, PartyStatus


class PartyModel(TrackedBase):
    """A customer or supplier owned by a vendor."""

    __tablename__ = "parties"

    __table_args__ = (
        Index("idx_party_vendor_kind", "vendor_id", "party_kind"),
    )

    vendor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    party_kind: Mapped[str] = mapped_column(String(20), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PartyStatus.ACTIVE.value,
    )

    def to_dto(self) -> PartyInfo:
        return PartyInfo(
            id=self.id,
            vendor_id=self.vendor_id,
            party_kind=PartyKind(self.party_kind),
            name=self.name,
            phone=self.phone,
            email=self.email,
            status=PartyStatus(self.status),
        )

    def __repr__(self) -> str:
        return f"<Party {self.party_kind}: {self.name}>"
