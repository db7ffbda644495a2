"""Environment-driven bridge configuration."""

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3010
DEFAULT_AUTH_DIR = "auth_info"
DEFAULT_BROWSER = ("WhatsApp Assistant", "Chrome", "130.0.0")

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class BridgeSettings:
    """Resolved bridge configuration."""

    host: str
    port: int
    auth_dir: Path
    session_factory: str
    print_qr: bool
    browser: tuple[str, str, str]


def _parse_port(raw: str) -> int:
    try:
        port = int(raw)
    except ValueError as exc:
        raise RuntimeError(f"BRIDGE_PORT must be an integer, got {raw!r}") from exc
    if not 0 < port < 65536:
        raise RuntimeError(f"BRIDGE_PORT out of range: {port}")
    return port


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise RuntimeError(f"{name} must be a boolean flag, got {raw!r}")


def _parse_browser(raw: str) -> tuple[str, str, str]:
    parts = [p.strip() for p in raw.split(",")]
    if len(parts) != 3 or not all(parts):
        raise RuntimeError(
            "BRIDGE_BROWSER must be 'name,browser,version' (e.g. 'WhatsApp Assistant,Chrome,130.0.0')"
        )
    return parts[0], parts[1], parts[2]


def _check_factory_path(raw: str | None) -> str:
    if not raw or not raw.strip():
        raise RuntimeError(
            "BRIDGE_SESSION_FACTORY required (module:attribute of the protocol backend)"
        )
    raw = raw.strip()
    module, sep, attr = raw.partition(":")
    if not sep or not module or not attr:
        raise RuntimeError(
            f"BRIDGE_SESSION_FACTORY must be 'module:attribute', got {raw!r}"
        )
    return raw


def get_auth_dir() -> Path:
    """Credential directory from BRIDGE_AUTH_DIR (default: ./auth_info)."""
    return Path(os.environ.get("BRIDGE_AUTH_DIR", DEFAULT_AUTH_DIR)).expanduser()


def get_settings() -> BridgeSettings:
    """Read bridge settings from the environment.

    Required env vars:
    - BRIDGE_SESSION_FACTORY: protocol backend as module:attribute
      (wabridge.session.loopback:LoopbackSessionFactory for local development)

    Optional env vars:
    - BRIDGE_HOST: bind interface (default: 0.0.0.0)
    - BRIDGE_PORT: bind port (default: 3010)
    - BRIDGE_AUTH_DIR: credential directory (default: ./auth_info)
    - BRIDGE_PRINT_QR: print QR challenges to the terminal (default: true)
    - BRIDGE_BROWSER: browser identity triple, comma separated

    Raises:
        RuntimeError: If BRIDGE_SESSION_FACTORY is unset or a value is malformed.
    """
    browser_raw = os.environ.get("BRIDGE_BROWSER")

    return BridgeSettings(
        host=os.environ.get("BRIDGE_HOST", DEFAULT_HOST),
        port=_parse_port(os.environ.get("BRIDGE_PORT", str(DEFAULT_PORT))),
        auth_dir=get_auth_dir(),
        session_factory=_check_factory_path(
            os.environ.get("BRIDGE_SESSION_FACTORY")
        ),
        print_qr=_parse_bool("BRIDGE_PRINT_QR", os.environ.get("BRIDGE_PRINT_QR", "true")),
        browser=_parse_browser(browser_raw) if browser_raw else DEFAULT_BROWSER,
    )
