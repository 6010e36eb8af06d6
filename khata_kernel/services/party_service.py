"""
Service layer for the vendor's customers and suppliers.

The full party lifecycle (edit, deactivate, contact details) is owned by
the suite's CRUD modules.  The ledger core only needs to register parties
and resolve references to them inside a vendor.
"""

from uuid import UUID

from sqlalchemy import select

from khata_kernel.domain.dtos import PartyInfo
from khata_kernel.domain.values import PartyKind, PartyStatus
from khata_kernel.exceptions import PartyNotFoundError, ValidationError
from khata_kernel.logging_config import get_logger
from khata_kernel.models.party import PartyModel
from khata_kernel.services.base import BaseService

logger = get_logger("services.party")


class PartyService(BaseService[PartyModel]):
    """
    Registers and looks up parties, always scoped to one vendor.

    A party that exists under another vendor is reported as not found;
    there is no cross-tenant lookup.
    """

    def _get_model(
        self,
        vendor_id: UUID,
        party_id: UUID,
        party_kind: PartyKind | None = None,
    ) -> PartyModel:
        party = self.session.get(PartyModel, party_id)
        if party is None or party.vendor_id != vendor_id:
            raise PartyNotFoundError(str(party_id), party_kind.value if party_kind else None)
        if party_kind is not None and party.party_kind != party_kind.value:
            raise PartyNotFoundError(str(party_id), party_kind.value)
        return party

    def register(
        self,
        vendor_id: UUID,
        party_kind: PartyKind,
        name: str,
        actor_id: UUID,
        phone: str | None = None,
        email: str | None = None,
    ) -> PartyInfo:
        """
        Register a customer or supplier under a vendor.

        Raises:
            ValidationError: If the name is blank.
        """
        if not name or not name.strip():
            raise ValidationError("name", "is required")

        now = self.clock.now_utc()
        party = PartyModel(
            vendor_id=vendor_id,
            party_kind=PartyKind(party_kind).value,
            name=name.strip(),
            phone=phone,
            email=email,
            status=PartyStatus.ACTIVE.value,
            created_at=now,
            updated_at=now,
            created_by_id=actor_id,
        )
        self.session.add(party)
        self.session.flush()

        logger.info(
            "party_registered",
            extra={
                "vendor_id": str(vendor_id),
                "party_id": str(party.id),
                "party_kind": party.party_kind,
            },
        )
        return party.to_dto()

    def get(
        self,
        vendor_id: UUID,
        party_id: UUID,
        party_kind: PartyKind | None = None,
    ) -> PartyInfo:
        """
        Get a party by ID within a vendor.

        Raises:
            PartyNotFoundError: If the party does not exist for this vendor
                (or is not of ``party_kind`` when one is given).
        """
        return self._get_model(vendor_id, party_id, party_kind).to_dto()

    def list_by_kind(self, vendor_id: UUID, party_kind: PartyKind) -> list[PartyInfo]:
        stmt = (
            select(PartyModel)
            .where(PartyModel.vendor_id == vendor_id)
            .where(PartyModel.party_kind == PartyKind(party_kind).value)
            .order_by(PartyModel.name)
        )
        return [p.to_dto() for p in self.session.scalars(stmt)]

    def names_for(self, vendor_id: UUID, party_ids: set[UUID]) -> dict[UUID, str]:
        """Display names for a batch of party ids; unknown ids are omitted."""
        if not party_ids:
            return {}
        stmt = (
            select(PartyModel)
            .where(PartyModel.vendor_id == vendor_id)
            .where(PartyModel.id.in_(party_ids))
        )
        return {p.id: p.name for p in self.session.scalars(stmt)}
