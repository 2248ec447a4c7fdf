import copy
import os
import logging

import yaml

from hymnal.constants import CONFIG_FILE, DEFAULT_SETTINGS

# Retrieve main logger
logger = logging.getLogger("main")

REMOTE_BACKENDS = ("memory", "firebase")
LOCAL_BACKENDS = ("sql", "redis")

# Cache variable
_cached_settings = None


def merge_settings(overrides):
    """Deep merge a settings dict over the defaults"""
    merged_settings = copy.deepcopy(DEFAULT_SETTINGS)
    for section, values in (overrides or {}).items():
        if isinstance(values, dict) and section in merged_settings and isinstance(merged_settings[section], dict):
            merged_settings[section].update(values)
        else:
            merged_settings[section] = values
    return merged_settings


def load_settings(force=False, config_file=None):
    global _cached_settings

    if _cached_settings and not force:
        return _cached_settings

    config_file = config_file or CONFIG_FILE
    if os.path.exists(config_file):
        logger.debug(f"Reading configuration file: {config_file}")
        with open(config_file, "r") as yaml_file:
            settings = yaml.safe_load(yaml_file) or {}
        settings = merge_settings(settings)
    else:
        settings = merge_settings({})
        try:
            os.makedirs(os.path.dirname(config_file), exist_ok=True)
            with open(config_file, "w") as yaml_file:
                yaml.dump(settings, yaml_file)
        except OSError as e:
            logger.warning(f"Could not write default configuration to {config_file}: {e}")

    _cached_settings = settings
    return settings


def verify_settings(section, data):
    success = True
    errors = []
    if section == "remote":
        backend = data.get("backend")
        if backend not in REMOTE_BACKENDS:
            success = False
            errors.append({"path": "remote/backend", "error": f"Unknown remote backend {backend}."})
        elif backend == "firebase" and not data.get("database_url"):
            success = False
            errors.append({"path": "remote/database_url", "error": "Firebase backend requires a database url."})
    elif section == "local_store":
        backend = data.get("backend")
        if backend not in LOCAL_BACKENDS:
            success = False
            errors.append({"path": "local_store/backend", "error": f"Unknown local store backend {backend}."})
    elif section == "cache":
        for key in ("ttl_hours", "premium_ttl_minutes", "role_ttl_seconds"):
            value = data.get(key)
            if value is not None and (not isinstance(value, (int, float)) or value <= 0):
                success = False
                errors.append({"path": f"cache/{key}", "error": f"{key} must be a positive number."})
    elif section == "connectivity":
        online = data.get("online_interval_seconds", 0)
        offline = data.get("offline_interval_seconds", 0)
        if offline > online:
            success = False
            errors.append(
                {"path": "connectivity/offline_interval_seconds", "error": "Offline polling must not be slower than online polling."}
            )
    return success, errors


def save_settings_section(section, data, config_file=None):
    success, errors = verify_settings(section, data)
    if not success:
        return success, errors
    config_file = config_file or CONFIG_FILE
    settings = load_settings(config_file=config_file)
    settings.setdefault(section, {}).update(data)
    with open(config_file, "w") as yaml_file:
        yaml.dump(settings, yaml_file)
    reload_conf(config_file=config_file)
    return success, errors


def reload_conf(config_file=None):
    """Reload application settings cache"""
    global _cached_settings
    _cached_settings = None
    return load_settings(force=True, config_file=config_file)
