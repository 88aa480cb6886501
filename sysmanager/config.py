"""
Settings loading for SystemManager.

Settings live in a YAML file and are handled as a plain dict, e.g.:

    server: 10.0.0.1:9042
    credentials:
      username: admin
      password: secret
    send_timeout: 15000        # ms
    recv_timeout: 15000        # ms
    schema_agreement:
      poll_interval: 0.5       # seconds
      timeout: 60              # seconds, null for no deadline
      max_attempts: null
    exclude_system_keyspaces: true
    custom_excluded_keyspaces: []
"""

import logging

import yaml

from .agreement import DEFAULT_AGREEMENT_TIMEOUT, DEFAULT_POLL_INTERVAL
from .connector import DEFAULT_RECV_TIMEOUT, DEFAULT_SEND_TIMEOUT, DEFAULT_SERVER
from .exceptions import SystemManagerError

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def apply_defaults(settings):
    """Fills in every recognized setting that is missing. Returns the same dict."""
    settings.setdefault('server', DEFAULT_SERVER)
    settings.setdefault('credentials', None)
    settings.setdefault('send_timeout', DEFAULT_SEND_TIMEOUT)
    settings.setdefault('recv_timeout', DEFAULT_RECV_TIMEOUT)
    settings.setdefault('exclude_system_keyspaces', True)
    settings.setdefault('custom_excluded_keyspaces', [])

    agreement = dict(settings.get('schema_agreement') or {})
    agreement.setdefault('poll_interval', DEFAULT_POLL_INTERVAL)
    agreement.setdefault('timeout', DEFAULT_AGREEMENT_TIMEOUT)
    agreement.setdefault('max_attempts', None)
    settings['schema_agreement'] = agreement

    credentials = settings['credentials']
    if credentials is not None:
        if not isinstance(credentials, dict) or not credentials.get('username'):
            raise SystemManagerError("credentials must be a mapping with 'username' and 'password'")

    return settings


def load_settings(config_file):
    """
    Loads a YAML settings file and applies defaults.

    Raises:
        SystemManagerError: file missing, unreadable or not valid YAML
    """
    try:
        with open(config_file, 'r') as f:
            settings = yaml.safe_load(f) or {}
    except (FileNotFoundError, yaml.YAMLError) as e:
        logger.error(f"Error loading settings from {config_file}: {e}")
        raise SystemManagerError(f"Error loading settings from {config_file}: {e}") from e

    if not isinstance(settings, dict):
        raise SystemManagerError(f"Settings file {config_file} must contain a mapping")

    return apply_defaults(settings)


def configure_logging(level=logging.INFO, log_file=None):
    """Console (and optional file) logging for scripts that use the library."""
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)
