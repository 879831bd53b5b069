"""Host-side preferences for revoco.

Remembers which device file template and I/O backend to use, so they need
not be passed on every call.  Nothing here is sent to the device: wheel
settings live in the receiver firmware only.

Config is stored at ~/.config/revoco/config.json (XDG-compliant).

Usage:
    from revoco.conf import get_device_template, get_backend

    get_device_template()   # e.g. "/dev/hidraw%d", or None
    get_backend()           # "hidraw" (default) or "hidapi"
"""
from __future__ import annotations

import json
import logging
import os
from typing import Optional

log = logging.getLogger(__name__)

# =========================================================================
# Config file location (XDG-compliant)
# =========================================================================

_XDG_CONFIG = os.environ.get('XDG_CONFIG_HOME', os.path.expanduser('~/.config'))
CONFIG_DIR = os.path.join(_XDG_CONFIG, 'revoco')
CONFIG_PATH = os.path.join(CONFIG_DIR, 'config.json')

DEFAULT_BACKEND = 'hidraw'


# =========================================================================
# Low-level config persistence
# =========================================================================

def load_config() -> dict:
    """Load user config from disk. Returns empty dict on missing/corrupt file."""
    try:
        with open(CONFIG_PATH, 'r') as f:
            config = json.load(f)
    except FileNotFoundError:
        return {}
    except (json.JSONDecodeError, OSError) as e:
        log.warning("Ignoring unreadable config %s: %s", CONFIG_PATH, e)
        return {}
    if not isinstance(config, dict):
        log.warning("Ignoring config %s: not a JSON object", CONFIG_PATH)
        return {}
    return config


def save_config(config: dict):
    """Save user config to disk."""
    os.makedirs(CONFIG_DIR, exist_ok=True)
    with open(CONFIG_PATH, 'w') as f:
        json.dump(config, f, indent=2)
    log.debug("Saved config to %s", CONFIG_PATH)


# =========================================================================
# Device preferences
# =========================================================================

def get_device_template() -> Optional[str]:
    """Get the remembered device path template, if any."""
    template = load_config().get('device')
    return template if isinstance(template, str) and template else None


def save_device_template(template: str):
    """Remember a device path template (``/dev/hidraw%d`` or a fixed path)."""
    config = load_config()
    config['device'] = template
    save_config(config)


def get_backend() -> str:
    """Get the remembered I/O backend, defaulting to hidraw."""
    backend = load_config().get('backend')
    return backend if isinstance(backend, str) and backend else DEFAULT_BACKEND


def save_backend(backend: str):
    """Remember the I/O backend name."""
    config = load_config()
    config['backend'] = backend
    save_config(config)
