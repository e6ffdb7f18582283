"""
Configuration loader – scan defaults from config/settings.yml, overridden
by environment variables (.env is loaded by utils.load_env).

Precedence, lowest first: settings.yml -> environment -> CLI flags.
"""

import logging
import os

import yaml

log = logging.getLogger(__name__)

DEFAULTS = {
    "recipient": "",
    "date_range": "30d",
    "operator_email": "",
    "mail_source": "",
    "output_dir": "",
    "google_sheet_tab": "Session Metrics",
}

# settings key -> environment variable
ENV_KEYS = {
    "recipient": "TARGET_RECIPIENT",
    "date_range": "DATE_RANGE",
    "operator_email": "OPERATOR_EMAIL",
    "mail_source": "MAIL_SOURCE",
    "output_dir": "OUTPUT_DIR",
    "google_sheet_tab": "GOOGLE_SHEET_TAB",
}


def _config_path(filename):
    return os.path.join(os.path.dirname(__file__), '..', 'config', filename)


def load_settings_file(path=None) -> dict:
    path = path or _config_path('settings.yml')
    if not os.path.exists(path):
        return {}
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        log.warning("Ignoring %s: expected a mapping, got %s", path, type(data).__name__)
        return {}
    return data


def load_settings(env=None, path=None) -> dict:
    """Return the merged settings dict (defaults, settings.yml, environment)."""
    env = os.environ if env is None else env
    settings = dict(DEFAULTS)
    for key, val in load_settings_file(path).items():
        if key in DEFAULTS and val is not None:
            settings[key] = str(val).strip()
        else:
            log.debug("Unknown settings.yml key ignored: %s", key)
    for key, env_key in ENV_KEYS.items():
        val = env.get(env_key)
        if val:
            settings[key] = val.strip()
    return settings
