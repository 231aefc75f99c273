from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str
    host: str
    port: int
    debug: bool
    cors_origins: list[str] = []
    frontend_url: str  # URL of the inbox frontend, magic links point to <frontend_url>/magic-login
    admin_api_key: str  # Bearer key for administrative endpoints
    mail_domain: str = "bltnm.store"
    # DKIM signing key is read once at startup, the process refuses to start without it
    dkim_private_key_path: str = "/etc/dkim/mail.private"
    dkim_selector: str = "mail"
    # Outbound relay (SMTPS), sends fail with TransportError when no host is configured
    smtp_host: str | None = None
    smtp_port: int = 465
    smtp_use_tls: bool = True
    smtp_validate_certs: bool = True
    smtp_username: str | None = None  # Defaults to noreply@<mail_domain>
    smtp_password: str | None = None
    # Inbound SMTP listener, disabled when no port is set
    inbound_smtp_host: str = "0.0.0.0"  # noqa: S104
    inbound_smtp_port: int | None = None
    session_ttl_hours: int = 24
    magic_link_ttl_days: int = 365
    magic_link_retention_days: int | None = 30  # Days after expiry before MongoDB drops a token

    model_config = {
        "env_file": [".env"],
        "env_prefix": "MAILHUB_",
        "extra": "ignore",
    }

    @property
    def noreply_address(self) -> str:
        return f"noreply@{self.mail_domain}"
