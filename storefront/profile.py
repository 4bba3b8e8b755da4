import logging
from dataclasses import replace
from typing import AsyncIterator, Optional

import pydantic

from .constants import MALFORMED_DOCUMENT, USER_COLLECTION
from .docstore import DocumentSnapshot, DocumentStore, DocumentStoreError, ListenerRegistration, Transaction
from .domain import UserContext, UserProfile
from .errors import ValidationError
from .frp import StateFlow
from .ftypes import Either, Resource
from .transforms import profile_from_document, profile_to_document

logger = logging.getLogger(__name__)

INVALID_PROFILE = "Invalid email or user data"


def validate_profile(profile: UserProfile) -> Either[ValidationError, dict]:
    """Right(документ) или Left(ValidationError) для пустых имён / плохого email"""
    try:
        return Either.right(profile_to_document(profile))
    except pydantic.ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors())
        return Either.left(ValidationError(INVALID_PROFILE, field=fields))


class ProfileService:
    """Документ пользователя user/{uid}: живое чтение и обновление"""

    def __init__(self, store: DocumentStore, user: UserContext):
        self.store = store
        self.user = user
        self.profile: StateFlow[Resource[UserProfile]] = StateFlow(Resource.unspecified())
        self.update_info: StateFlow[Resource[UserProfile]] = StateFlow(Resource.unspecified())
        self._registration: Optional[ListenerRegistration] = None

    def start(self) -> None:
        if self._registration is not None:
            return
        self.profile.emit(Resource.loading())
        self._registration = self.store.listen_document(
            USER_COLLECTION, self.user.uid, self._on_snapshot
        )

    def close(self) -> None:
        if self._registration is not None:
            self._registration.remove()
            self._registration = None

    def subscribe_profile(self) -> AsyncIterator[Resource[UserProfile]]:
        self.start()
        return self.profile.collect()

    def _on_snapshot(
        self, snapshot: Optional[DocumentSnapshot], error: Optional[DocumentStoreError]
    ) -> None:
        if error is not None:
            self.profile.emit(Resource.error(str(error)))
        elif snapshot is not None and snapshot.exists:
            try:
                profile = profile_from_document(snapshot.data)
            except pydantic.ValidationError as e:
                logger.warning("Profile of %s is malformed: %s", self.user.uid, e)
                self.profile.emit(Resource.error(MALFORMED_DOCUMENT))
                return
            self.profile.emit(Resource.success(profile))

    async def save_profile(self, profile: UserProfile) -> Either[ValidationError, Resource[UserProfile]]:
        """Запись документа целиком (регистрация)"""
        validated = validate_profile(profile)
        if validated.is_left:
            return validated
        try:
            await self.store.set(USER_COLLECTION, self.user.uid, validated.value)
        except DocumentStoreError as e:
            return Either.right(Resource.error(str(e)))
        return Either.right(Resource.success(profile))

    async def update_profile(
        self, profile: UserProfile
    ) -> Either[ValidationError, Resource[UserProfile]]:
        """
        Обновление в транзакции. Если в новом профиле нет image_path,
        сохраняется картинка из текущего документа.
        """
        validated = validate_profile(profile)
        if validated.is_left:
            return validated

        async def write(transaction: Transaction) -> UserProfile:
            updated = profile
            if not profile.image_path:
                current = await transaction.get(USER_COLLECTION, self.user.uid)
                old_image = current.get("image_path", "") if current.exists else ""
                updated = replace(profile, image_path=old_image)
            transaction.set(USER_COLLECTION, self.user.uid, profile_to_document(updated))
            return updated

        self.update_info.emit(Resource.loading())
        try:
            saved = await self.store.run_transaction(write)
        except DocumentStoreError as e:
            logger.warning("Updating profile of %s failed: %s", self.user.uid, e)
            resource = Resource.error(str(e))
        else:
            resource = Resource.success(saved)
        self.update_info.emit(resource)
        return Either.right(resource)
