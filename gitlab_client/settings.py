"""Client settings loaded from environment variables."""

from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .auth import Credential, CredentialKind
from .config import DEFAULT_BASE_URL, USER_AGENT, ClientConfig, _default_headers
from .retry import RetryPolicy


class GitLabSettings(BaseSettings):
    """GitLab client configuration loaded from ``GITLAB_*`` variables."""

    model_config = SettingsConfigDict(
        env_prefix="GITLAB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: str = DEFAULT_BASE_URL

    # Credentials
    token: SecretStr | None = None
    token_type: Literal["private", "oauth", "job", "deploy"] = "private"
    username: str | None = None
    password: SecretStr | None = None

    # Retry settings
    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0

    # Timeouts (seconds)
    connect_timeout: float = 10.0
    read_timeout: float = 60.0

    user_agent: str = USER_AGENT

    def credential(self) -> Credential:
        """Credential for these settings; basic auth when a username is set."""
        if self.username:
            password = self.password.get_secret_value() if self.password else ""
            return Credential.basic(self.username, password)
        token = self.token.get_secret_value() if self.token else ""
        return Credential(CredentialKind(self.token_type), token=token)

    def to_config(self) -> ClientConfig:
        headers = _default_headers()
        headers["User-Agent"] = self.user_agent
        return ClientConfig(
            base_url=self.base_url,
            connect_timeout=self.connect_timeout,
            read_timeout=self.read_timeout,
            default_headers=headers,
            retry_policy=RetryPolicy(
                max_attempts=self.max_attempts,
                initial_delay=self.initial_delay,
                max_delay=self.max_delay,
            ),
        )
