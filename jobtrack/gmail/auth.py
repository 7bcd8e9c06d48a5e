"""Gmail OAuth2 authorization and mailbox session storage."""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from jobtrack.persistence.models import MailboxConnection, owned_by

from .exceptions import ProviderFailure

logger = logging.getLogger(__name__)

# Gmail API scopes
SCOPES = ["https://www.googleapis.com/auth/gmail.readonly"]

AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"


@dataclass(frozen=True)
class MailboxSession:
    """Credential bundle for one owner's connected mailbox.

    Passed explicitly into the client, scanner and scheduler. Instances are
    never mutated; a reconnect produces a new session.
    """

    access_token: str
    refresh_token: Optional[str] = None
    expiry: Optional[datetime] = None
    owner_id: Optional[str] = None
    scopes: tuple[str, ...] = tuple(SCOPES)

    def credentials(self) -> Credentials:
        """Build google-auth credentials for API calls.

        No client secret is attached, so an expired token surfaces as a
        ``RefreshError`` instead of being refreshed silently.
        """
        expiry = self.expiry
        if expiry is not None and expiry.tzinfo is not None:
            # google-auth compares against naive UTC
            expiry = expiry.astimezone(timezone.utc).replace(tzinfo=None)

        return Credentials(
            token=self.access_token,
            refresh_token=self.refresh_token,
            token_uri=TOKEN_URI,
            scopes=list(self.scopes),
            expiry=expiry,
        )


class GmailAuthorizer:
    """Web-server OAuth flow for connecting a Gmail mailbox."""

    def __init__(self, client_id: str, client_secret: str, redirect_uri: str):
        """
        Initialize the authorizer.

        Args:
            client_id: OAuth client ID
            client_secret: OAuth client secret
            redirect_uri: Callback URL registered for the client
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri

    def _client_config(self) -> dict:
        return {
            "web": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": AUTH_URI,
                "token_uri": TOKEN_URI,
                "redirect_uris": [self.redirect_uri],
            }
        }

    def _flow(self) -> Flow:
        # The code exchange happens in a later request, so no PKCE verifier
        return Flow.from_client_config(
            self._client_config(),
            scopes=SCOPES,
            redirect_uri=self.redirect_uri,
            autogenerate_code_verifier=False,
        )

    def authorization_url(self, state: Optional[str] = None) -> str:
        """Return the consent-screen URL the user should be sent to."""
        url, _ = self._flow().authorization_url(
            access_type="offline",
            prompt="consent",
            include_granted_scopes="true",
            state=state,
        )
        return url

    def exchange_code(self, code: str, owner_id: Optional[str] = None) -> MailboxSession:
        """
        Exchange an authorization code for a mailbox session.

        Args:
            code: Code returned to the redirect URI
            owner_id: User the mailbox belongs to

        Returns:
            New MailboxSession

        Raises:
            ProviderFailure: If the token endpoint rejects the code
        """
        flow = self._flow()
        try:
            flow.fetch_token(code=code)
        except (OAuth2Error, ValueError) as e:
            logger.error("OAuth code exchange failed: %s", e)
            raise ProviderFailure("exchange_code", str(e)) from e

        credentials = flow.credentials
        return MailboxSession(
            access_token=credentials.token,
            refresh_token=credentials.refresh_token,
            expiry=credentials.expiry,
            owner_id=owner_id,
            scopes=tuple(credentials.scopes or SCOPES),
        )


class MailboxSessionStore:
    """Persist mailbox sessions, one per owner."""

    def __init__(self, session: Session):
        """
        Initialize the store.

        Args:
            session: Database session
        """
        self.session = session

    def get(self, owner_id: Optional[str] = None) -> Optional[MailboxSession]:
        """Load the owner's mailbox session, if connected."""
        stmt = select(MailboxConnection).where(owned_by(MailboxConnection.owner_id, owner_id))
        row = self.session.execute(stmt).scalars().first()
        if row is None:
            return None
        return self._to_session(row)

    def save(self, mailbox: MailboxSession) -> None:
        """Store a session, replacing any previous one for the same owner."""
        self.session.execute(
            delete(MailboxConnection).where(owned_by(MailboxConnection.owner_id, mailbox.owner_id))
        )
        self.session.add(
            MailboxConnection(
                owner_id=mailbox.owner_id,
                access_token=mailbox.access_token,
                refresh_token=mailbox.refresh_token,
                expiry=mailbox.expiry,
                scopes=list(mailbox.scopes),
            )
        )
        self.session.commit()
        logger.info("Mailbox connected for owner %s", mailbox.owner_id)

    def invalidate(self, owner_id: Optional[str] = None) -> bool:
        """Discard the owner's session. Returns True if one existed."""
        result = self.session.execute(
            delete(MailboxConnection).where(owned_by(MailboxConnection.owner_id, owner_id))
        )
        self.session.commit()
        if result.rowcount:
            logger.warning("Mailbox disconnected for owner %s", owner_id)
        return bool(result.rowcount)

    def is_connected(self, owner_id: Optional[str] = None) -> bool:
        return self.get(owner_id) is not None

    def all_sessions(self) -> list[MailboxSession]:
        """Every stored session, used to resume schedules at startup."""
        rows = self.session.execute(select(MailboxConnection)).scalars().all()
        return [self._to_session(row) for row in rows]

    @staticmethod
    def _to_session(row: MailboxConnection) -> MailboxSession:
        return MailboxSession(
            access_token=row.access_token,
            refresh_token=row.refresh_token,
            expiry=row.expiry,
            owner_id=row.owner_id,
            scopes=tuple(row.scopes or SCOPES),
        )
