# app/repositories/address_repo.py
import uuid

from sqlmodel import Session, select

from app.models.address import Address


class AddressRepository:
    """
    Read-only access to addresses referenced by orders.
    """

    def get_for_user(
        self,
        session: Session,
        address_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Address | None:
        stmt = select(Address).where(
            Address.id == address_id, Address.user_id == user_id
        )
        return session.exec(stmt).first()

    def get_by_id(self, session: Session, address_id: uuid.UUID) -> Address | None:
        return session.get(Address, address_id)
