"""Session context - current auth user and profile."""

import asyncio
from typing import Any, Callable, Optional

from reelhome.models.profile import Profile, ProfileUpdate
from reelhome.services.chat import get_profile
from reelhome.services.supabase_client import SupabaseClient, describe_error
from reelhome.utils.config import Settings
from reelhome.utils.errors import AuthError
from reelhome.utils.logging import correlation_context, get_structured_logger, mask_user_id

logger = get_structured_logger(__name__)


class SessionContext:
    """Owns who is signed in; views read it and call its operations.

    ``load()`` restores the stored session and starts following auth state
    changes; each change re-resolves the user and reloads the profile,
    sign-out clears both.
    """

    def __init__(self):
        self.user: Optional[Any] = None
        self.session: Optional[Any] = None
        self.profile: Optional[Profile] = None
        self.is_loading = True
        self._auth_subscription = None
        self._pending: set[asyncio.Task] = set()
        self._listeners: list[Callable[["SessionContext"], None]] = []

    @property
    def user_id(self) -> Optional[str]:
        return getattr(self.user, "id", None)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def subscribe(self, listener: Callable[["SessionContext"], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    async def load(self) -> None:
        """Restore the current session and follow auth-state changes."""
        async with SupabaseClient() as client:
            try:
                session = await client.auth.get_session()
            except Exception as e:
                logger.error("Failed to restore session", **describe_error(e))
                session = None
            
            if self._auth_subscription is None:
                self._auth_subscription = client.auth.on_auth_state_change(self._on_auth_state_change)
        
        await self._apply_session(session)

    def _on_auth_state_change(self, event: Any, session: Optional[Any]) -> None:
        logger.info("Auth state changed", auth_event=str(event))
        task = asyncio.get_running_loop().create_task(self._apply_session(session))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _apply_session(self, session: Optional[Any]) -> None:
        self.session = session
        self.user = getattr(session, "user", None) if session else None
        
        if self.user is not None:
            await self._load_profile(self.user.id)
        else:
            self.profile = None
            self.is_loading = False
            self._notify()

    async def _load_profile(self, user_id: str) -> None:
        try:
            result = await get_profile(user_id)
            if result.ok:
                self.profile = result.data
            else:
                logger.error("Failed to load profile", user_id=mask_user_id(user_id), reason=result.error)
        finally:
            self.is_loading = False
            self._notify()

    async def wait_idle(self) -> None:
        """Wait for profile loads triggered by auth events."""
        if self._pending:
            await asyncio.gather(*list(self._pending))

    async def sign_in(self, email: str, password: str) -> None:
        with correlation_context():
            async with SupabaseClient() as client:
                try:
                    response = await client.auth.sign_in_with_password({
                        "email": email,
                        "password": password,
                    })
                except Exception as e:
                    logger.warning("Sign-in failed", **describe_error(e))
                    raise AuthError(f"登入失敗：{e}") from e
            
            await self._apply_session(getattr(response, "session", None))
            logger.info("Signed in", user_id=mask_user_id(self.user_id))

    async def sign_up(self, email: str, password: str, display_name: str) -> None:
        """Register an account and create its profile row.

        A failed profile insert is logged but does not fail the sign-up.
        """
        if not display_name.strip():
            raise AuthError("請輸入顯示名稱")
        
        with correlation_context():
            async with SupabaseClient() as client:
                try:
                    response = await client.auth.sign_up({
                        "email": email,
                        "password": password,
                    })
                except Exception as e:
                    logger.warning("Sign-up failed", **describe_error(e))
                    raise AuthError(f"註冊失敗：{e}") from e
                
                user = getattr(response, "user", None)
                if user is not None:
                    try:
                        await client.table(Settings.PROFILES_TABLE).insert({
                            "id": user.id,
                            "display_name": display_name.strip(),
                        }).execute()
                    except Exception as e:
                        logger.error(
                            "Failed to create profile",
                            user_id=mask_user_id(user.id),
                            **describe_error(e)
                        )
            logger.info("Signed up", user_id=mask_user_id(getattr(user, "id", None)))

    async def sign_out(self) -> None:
        async with SupabaseClient() as client:
            try:
                await client.auth.sign_out()
            except Exception as e:
                logger.error("Sign-out failed", **describe_error(e))
        await self._apply_session(None)

    async def update_profile(self, updates: ProfileUpdate) -> Optional[Profile]:
        """Write profile changes for the signed-in user and merge them locally."""
        if self.user is None:
            return None
        
        changes = updates.model_dump(exclude_unset=True)
        async with SupabaseClient() as client:
            try:
                await (
                    client.table(Settings.PROFILES_TABLE)
                    .update(changes)
                    .eq("id", self.user_id)
                    .execute()
                )
            except Exception as e:
                logger.error("Failed to update profile", user_id=mask_user_id(self.user_id), **describe_error(e))
                raise AuthError(f"更新 profile 失敗：{e}") from e
        
        if self.profile is not None:
            self.profile = self.profile.model_copy(update=changes)
        self._notify()
        return self.profile

    def close(self) -> None:
        if self._auth_subscription is not None:
            self._auth_subscription.unsubscribe()
            self._auth_subscription = None
