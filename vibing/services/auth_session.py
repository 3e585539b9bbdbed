"""
Auth Session Store.

Holds the logged-in user and bearer token, restores a persisted session on
startup, and drops to logged-out state whenever the API reports expiry.
Token refresh exists but is never scheduled; callers invoke refresh().
"""

from structlog import get_logger

from vibing.api.auth import AuthApi
from vibing.api.client import ApiClient
from vibing.exceptions import AuthenticationRequiredError, AuthorizationError
from vibing.models.api import LoginCredentials, SignupData, User, UserRole
from vibing.services.store import Store
from vibing.services.token_store import is_token_expired

logger = get_logger(__name__)


class AuthSession(Store):
    """
    Session state: user, token, loading, error.

    Usage:
        session = AuthSession(api)
        await session.initialize()
        if not session.is_authenticated:
            await session.login("dev@example.com", "secret")
    """

    def __init__(self, client: ApiClient) -> None:
        super().__init__()
        self.client = client
        self.auth_api = AuthApi(client)
        self.user: User | None = None
        self.token: str | None = None
        self.loading = True
        self.error: str | None = None
        client.events.add_listener(self._on_session_expired)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    async def initialize(self) -> None:
        """Restore a persisted session, validating it against /auth/me."""
        store = self.client.token_store
        try:
            saved_token = store.get_token()
            saved_user = store.get_user()

            if saved_token and saved_user:
                if is_token_expired(saved_token):
                    logger.info("stored_token_expired", user_id=saved_user.id)
                    store.clear()
                else:
                    current_user = await self.auth_api.get_current_user()
                    self.user = current_user
                    self.token = saved_token
                    logger.info("session_restored", user_id=current_user.id)
        except Exception as exc:
            logger.error("auth_initialization_failed", error=str(exc))
            store.clear()
            self.user = None
            self.token = None
        finally:
            self.loading = False
            self._notify()

    async def login(self, email: str, password: str) -> User:
        result = await self.auth_api.login(LoginCredentials(email=email, password=password))
        self._establish(result.token, result.user, result.refresh_token)
        logger.info("user_logged_in", user_id=result.user.id, role=result.user.role.value)
        return result.user

    async def signup(self, data: SignupData) -> User:
        result = await self.auth_api.signup(data)
        self._establish(result.token, result.user, result.refresh_token)
        logger.info("user_signed_up", user_id=result.user.id, role=result.user.role.value)
        return result.user

    async def logout(self) -> None:
        """Log out; local state is cleared even if the server call fails."""
        try:
            if self.client.has_token():
                await self.auth_api.logout()
        except Exception as exc:
            logger.error("logout_failed", error=str(exc))
        finally:
            self.client.token_store.clear()
            self._reset()

    async def refresh(self) -> str:
        """Exchange the stored refresh token for a new bearer token."""
        refresh_token = self.client.token_store.get_refresh_token()
        if not refresh_token or self.user is None:
            raise AuthenticationRequiredError("No refresh token available")
        tokens = await self.auth_api.refresh_token(refresh_token)
        self._establish(tokens.token, self.user, tokens.refresh_token or refresh_token)
        logger.info("token_refreshed", user_id=self.user.id)
        return tokens.token

    async def update_profile(
        self,
        name: str | None = None,
        phone: str | None = None,
        avatar: str | None = None,
    ) -> User:
        if self.user is None or self.token is None:
            raise AuthenticationRequiredError()
        changes = {
            key: value
            for key, value in {"name": name, "phone": phone, "avatar": avatar}.items()
            if value is not None
        }
        user = await self.auth_api.update_profile(changes)
        self._establish(self.token, user, self.client.token_store.get_refresh_token())
        return user

    def require_role(self, *roles: UserRole) -> User:
        """Gate an operation on the current user's role."""
        if self.user is None:
            raise AuthenticationRequiredError()
        if roles and self.user.role not in roles:
            raise AuthorizationError(tuple(r.value for r in roles), self.user.role.value)
        return self.user

    def close(self) -> None:
        self.client.events.remove_listener(self._on_session_expired)

    def _establish(self, token: str, user: User, refresh_token: str | None) -> None:
        self.client.token_store.save(token, user, refresh_token)
        self.user = user
        self.token = token
        self.error = None
        self._notify()

    def _reset(self) -> None:
        self.user = None
        self.token = None
        self._notify()

    def _on_session_expired(self) -> None:
        if self.user is not None:
            logger.info("session_cleared_after_expiry", user_id=self.user.id)
        self._reset()
