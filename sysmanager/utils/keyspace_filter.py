"""
Keyspace name filtering for listing operations.

Separates the keyspaces Cassandra manages internally from the ones
created by users, plus any names excluded in the settings file.
"""

import logging

logger = logging.getLogger(__name__)

# Keyspaces created and managed by Cassandra itself
DEFAULT_SYSTEM_KEYSPACES = {
    'system',
    'system_schema',
    'system_auth',
    'system_distributed',
    'system_traces',
    'system_views',              # 4.0+
    'system_virtual_schema',     # 4.0+
}


class KeyspaceFilter:
    """
    Decides which keyspace names to hide from a listing.

    Usage:
        ks_filter = KeyspaceFilter(settings)
        names = ks_filter.filter_names(['system', 'app', 'scratch'])

    Args:
        settings (dict, optional): may contain
            - exclude_system_keyspaces (bool): hide system keyspaces (default: True)
            - custom_excluded_keyspaces (list): further names to hide
        additional_exclusions (list, optional): names to hide for this call only
    """

    def __init__(self, settings=None, additional_exclusions=None):
        self.settings = settings or {}
        self.exclude_system = self.settings.get('exclude_system_keyspaces', True)
        self.excluded_keyspaces = set()

        if self.exclude_system:
            self.excluded_keyspaces.update(DEFAULT_SYSTEM_KEYSPACES)

        custom = self.settings.get('custom_excluded_keyspaces') or []
        self.excluded_keyspaces.update(self._validate_exclusion_list(custom, 'custom_excluded_keyspaces'))

        if additional_exclusions:
            self.excluded_keyspaces.update(
                self._validate_exclusion_list(additional_exclusions, 'additional_exclusions')
            )

        logger.debug(f"Excluded keyspaces: {sorted(self.excluded_keyspaces)}")

    @staticmethod
    def _validate_exclusion_list(exclusions, config_key):
        """Normalizes an exclusion setting to a set of names."""
        # a bare string is a common YAML mistake
        if isinstance(exclusions, str):
            logger.warning(
                f"Config '{config_key}' should be a list, not a string. "
                f"Got: '{exclusions}'. Treating it as a single keyspace name."
            )
            return {exclusions}

        if isinstance(exclusions, (list, set, tuple)):
            result = set()
            for item in exclusions:
                if isinstance(item, str):
                    result.add(item)
                else:
                    logger.warning(f"Invalid item in '{config_key}': {item!r}. Expected string. Skipping.")
            return result

        logger.warning(
            f"Config '{config_key}' has invalid type: {type(exclusions).__name__}. "
            f"Expected list of strings. Ignoring value."
        )
        return set()

    def is_excluded(self, keyspace_name):
        return keyspace_name in self.excluded_keyspaces

    def filter_names(self, names):
        """Returns the names that are not excluded, preserving order."""
        result = [name for name in names if not self.is_excluded(name)]
        logger.debug(f"Returning {len(result)} of {len(names)} keyspaces")
        return result
