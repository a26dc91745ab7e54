"""Client credentials."""

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .request import Request


class CredentialKind(str, Enum):
    PRIVATE_TOKEN = "private"
    OAUTH_TOKEN = "oauth"
    JOB_TOKEN = "job"
    DEPLOY_TOKEN = "deploy"
    BASIC = "basic"


_TOKEN_HEADERS = {
    CredentialKind.PRIVATE_TOKEN: "PRIVATE-TOKEN",
    CredentialKind.JOB_TOKEN: "JOB-TOKEN",
    CredentialKind.DEPLOY_TOKEN: "Deploy-Token",
}


@dataclass(frozen=True)
class Credential:
    """Authentication credential, selected by ``kind``.

    Token kinds carry ``token``; ``BASIC`` carries ``username`` and
    ``password``. An empty token sends no authentication header, which is
    how unauthenticated clients are built.
    """

    kind: CredentialKind
    token: str = field(default="", repr=False)
    username: str = ""
    password: str = field(default="", repr=False)

    @classmethod
    def private_token(cls, token: str) -> "Credential":
        return cls(CredentialKind.PRIVATE_TOKEN, token=token)

    @classmethod
    def oauth_token(cls, token: str) -> "Credential":
        return cls(CredentialKind.OAUTH_TOKEN, token=token)

    @classmethod
    def job_token(cls, token: str) -> "Credential":
        return cls(CredentialKind.JOB_TOKEN, token=token)

    @classmethod
    def deploy_token(cls, token: str) -> "Credential":
        return cls(CredentialKind.DEPLOY_TOKEN, token=token)

    @classmethod
    def basic(cls, username: str, password: str) -> "Credential":
        return cls(CredentialKind.BASIC, username=username, password=password)

    def apply(self, request: Request, token_override: Optional[str] = None) -> None:
        """Set the authentication header on ``request``.

        ``token_override`` replaces the configured token for one call; a
        basic credential sends the override as an OAuth bearer token.
        """
        if token_override:
            header = _TOKEN_HEADERS.get(self.kind)
            if header is None:
                request.set_header("Authorization", f"Bearer {token_override}")
            else:
                request.set_header(header, token_override)
            return

        if self.kind is CredentialKind.BASIC:
            if self.username:
                raw = f"{self.username}:{self.password}".encode("utf-8")
                request.set_header("Authorization", "Basic " + base64.b64encode(raw).decode("ascii"))
        elif self.token:
            if self.kind is CredentialKind.OAUTH_TOKEN:
                request.set_header("Authorization", f"Bearer {self.token}")
            else:
                request.set_header(_TOKEN_HEADERS[self.kind], self.token)


ANONYMOUS = Credential(CredentialKind.PRIVATE_TOKEN)
