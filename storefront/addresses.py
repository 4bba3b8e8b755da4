import logging
from dataclasses import astuple
from typing import AsyncIterator, List, Optional, Tuple

import pydantic

from .constants import ALL_FIELDS_REQUIRED, MALFORMED_DOCUMENT, address_path
from .docstore import DocumentSnapshot, DocumentStore, DocumentStoreError, ListenerRegistration
from .domain import Address, UserContext
from .errors import ValidationError
from .frp import SharedFlow, StateFlow
from .ftypes import Either, Resource
from .transforms import address_from_document, address_to_document

logger = logging.getLogger(__name__)

Addresses = Tuple[Address, ...]


def validate_address(address: Address) -> Either[ValidationError, Address]:
    """Все шесть полей обязательны (после trim)"""
    if all(value.strip() for value in astuple(address)):
        return Either.right(address)
    return Either.left(ValidationError(ALL_FIELDS_REQUIRED))


class AddressBook:
    """
    Адреса пользователя.
    addresses       - живой список (Resource)
    add_new_address - результат последнего добавления
    errors          - ошибки валидации, отдельно от Resource
    """

    def __init__(self, store: DocumentStore, user: UserContext):
        self.store = store
        self.user = user
        self.collection = address_path(user.uid)
        self.addresses: StateFlow[Resource[Addresses]] = StateFlow(Resource.unspecified())
        self.add_new_address: StateFlow[Resource[Address]] = StateFlow(Resource.unspecified())
        self.errors: SharedFlow[str] = SharedFlow()
        self._registration: Optional[ListenerRegistration] = None

    def start(self) -> None:
        if self._registration is not None:
            return
        self.addresses.emit(Resource.loading())
        self._registration = self.store.listen(self.collection, self._on_snapshot)

    def close(self) -> None:
        if self._registration is not None:
            self._registration.remove()
            self._registration = None

    def list_addresses(self) -> AsyncIterator[Resource[Addresses]]:
        self.start()
        return self.addresses.collect()

    def _on_snapshot(
        self, snapshots: Optional[List[DocumentSnapshot]], error: Optional[DocumentStoreError]
    ) -> None:
        if error is not None or snapshots is None:
            self.addresses.emit(Resource.error(str(error)))
            return
        try:
            addresses = tuple(address_from_document(s.data) for s in snapshots)
        except pydantic.ValidationError as e:
            logger.warning("Address book of %s has a malformed document: %s", self.user.uid, e)
            self.addresses.emit(Resource.error(MALFORMED_DOCUMENT))
            return
        self.addresses.emit(Resource.success(addresses))

    async def add_address(
        self, address: Address
    ) -> Either[ValidationError, Resource[Address]]:
        validated = validate_address(address)
        if validated.is_left:
            self.errors.emit(validated.value.message)
            return validated

        self.add_new_address.emit(Resource.loading())
        try:
            await self.store.add(self.collection, address_to_document(address))
        except DocumentStoreError as e:
            logger.warning("Saving address for %s failed: %s", self.user.uid, e)
            resource = Resource.error(str(e))
        else:
            resource = Resource.success(address)
        self.add_new_address.emit(resource)
        return Either.right(resource)
