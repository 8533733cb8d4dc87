"""Session context of a console user."""

from backoffice.core.permissions import Role


class Session:
    """
    Authentication state held in memory for the lifetime of a console.

    Passed explicitly to the gateway client; nothing is persisted, so a new
    process starts anonymous.
    """

    def __init__(self) -> None:
        self.token: str | None = None
        self.role: Role | None = None
        self.full_name: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    def open(self, token: str, role: Role | str, full_name: str) -> None:
        """Start a session with a freshly issued token."""
        self.token = token
        self.role = Role(role)
        self.full_name = full_name

    def close(self) -> None:
        """Logout: forget the token and identity."""
        self.token = None
        self.role = None
        self.full_name = None

    def headers(self) -> dict[str, str]:
        """Headers attached to every gateway request."""
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def __repr__(self) -> str:
        return f"<Session(authenticated={self.is_authenticated}, role={self.role})>"
