"""Per-channel configuration gate.

Answers "can this channel send right now?" from a settings snapshot.
Pure and synchronous: the same settings always give the same answer.
"""

from dataclasses import dataclass

from notification_core.config import ChannelConfig, NotificationSettings
from notification_core.enums import ALL_CHANNELS, Channel

# Credential fields that must be non-blank, keyed by (channel, provider).
# Channels absent from this map (webhook) only need ``enabled``.
_REQUIRED_FIELDS: dict[tuple[str, str], tuple[str, ...]] = {
    (Channel.EMAIL, "smtp"): (
        "smtp_host",
        "smtp_port",
        "smtp_user",
        "smtp_password",
        "from_address",
    ),
    (Channel.EMAIL, "sendgrid"): ("sendgrid_api_key", "from_address"),
    (Channel.SMS, "twilio"): (
        "twilio_account_sid",
        "twilio_auth_token",
        "twilio_from_number",
    ),
    (Channel.PUSH, "fcm"): ("fcm_server_key",),
}


@dataclass(frozen=True, slots=True)
class ConfigValidation:
    """Outcome of a channel configuration check."""

    valid: bool
    reason: str | None = None
    suggestion: str | None = None


def _is_blank(value: object) -> bool:
    # bool/int settings (smtp_use_tls=False, port=0) count as present.
    if isinstance(value, (bool, int, float)):
        return False
    return value is None or (isinstance(value, str) and not value.strip())


def _missing_fields(channel: Channel, config: ChannelConfig) -> tuple[str | None, list[str]]:
    provider = getattr(config, "provider", None)
    if provider is None:
        return None, []
    required = _REQUIRED_FIELDS.get((channel, str(provider)))
    if required is None:
        raise KeyError(str(provider))
    return str(provider), [f for f in required if _is_blank(getattr(config, f))]


def validate_channel_config(
    channel: str | None, settings: NotificationSettings
) -> ConfigValidation:
    """Check that *channel* is known, enabled and fully configured."""
    if channel not in ALL_CHANNELS:
        return ConfigValidation(
            valid=False,
            reason=f"Unknown channel: {channel}",
            suggestion=f"Use one of: {', '.join(sorted(ALL_CHANNELS))}",
        )

    resolved = Channel(channel)
    config = settings.for_channel(resolved)

    if not config.enabled:
        return ConfigValidation(
            valid=False,
            reason=f"{resolved} notifications are not enabled",
            suggestion=f"Set {resolved.upper()}_ENABLED=true to turn the channel on",
        )

    try:
        provider, missing = _missing_fields(resolved, config)
    except KeyError as exc:
        return ConfigValidation(
            valid=False,
            reason=f"Provider {exc.args[0]} not configured for {resolved}",
            suggestion=f"Set {resolved.upper()}_PROVIDER to a supported provider",
        )

    if missing:
        return ConfigValidation(
            valid=False,
            reason=f"Missing configuration for {resolved}.{provider}: {', '.join(missing)}",
            suggestion=(
                "Set the required environment variables: "
                + ", ".join(f"{resolved.upper()}_{f.upper()}" for f in missing)
            ),
        )

    return ConfigValidation(valid=True)
