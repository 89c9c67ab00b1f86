"""
Configuration management for jobsweep

Handles system configuration with defaults and validation.
"""

from typing import Dict, Any, Optional
import copy
import os


class Config:
    """
    Configuration management class for jobsweep.

    Provides default configuration values and methods to get/set configuration.
    """

    DEFAULT_CONFIG = {
        'domain': 'default',
        'batch_size': 100,
        'claim_ttl': 3600,  # 1 hour
        'storage_dir': None,  # Will be set to ~/.jobsweep if None
        'log_level': 'INFO',
        'queue_backends': {'default': 'file'},
        'watermark_store': 'file'
    }

    def __init__(self, storage_dir: Optional[str] = None, config_dict: Optional[Dict[str, Any]] = None):
        """
        Initialize configuration.

        Args:
            storage_dir: Directory for configuration storage
            config_dict: Optional configuration dictionary to use
        """
        if storage_dir is None:
            storage_dir = os.path.expanduser("~/.jobsweep")

        self.storage_dir = str(storage_dir)

        self._config = copy.deepcopy(self.DEFAULT_CONFIG)
        self._config['storage_dir'] = self.storage_dir

        if config_dict:
            self._config.update(config_dict)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value
        """
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> bool:
        """
        Set configuration value with validation.

        Args:
            key: Configuration key
            value: Configuration value

        Returns:
            True if value was set, False if validation failed
        """
        if not self._validate_config_value(key, value):
            return False

        self._config[key] = value
        return True

    def get_all(self) -> Dict[str, Any]:
        """Get all configuration values"""
        return copy.deepcopy(self._config)

    def reset_to_defaults(self):
        """Reset configuration to default values"""
        self._config = copy.deepcopy(self.DEFAULT_CONFIG)
        self._config['storage_dir'] = self.storage_dir

    def backend_for(self, job_type: str) -> Optional[str]:
        """
        Look up the queue backend configured for a job type.

        Args:
            job_type: Queue type name

        Returns:
            Backend name, falling back to the 'default' entry, or None
        """
        backends = self._config.get('queue_backends') or {}
        return backends.get(job_type, backends.get('default'))

    def _validate_config_value(self, key: str, value: Any) -> bool:
        """
        Validate configuration value.

        Args:
            key: Configuration key
            value: Configuration value

        Returns:
            True if valid, False otherwise
        """
        validations = {
            'domain': lambda v: isinstance(v, str) and len(v) > 0,
            'batch_size': lambda v: isinstance(v, int) and not isinstance(v, bool) and 1 <= v <= 10000,
            'claim_ttl': lambda v: isinstance(v, int) and not isinstance(v, bool) and 1 <= v <= 604800,
            'storage_dir': lambda v: isinstance(v, str) or v is None,
            'log_level': lambda v: v in ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
            'queue_backends': lambda v: isinstance(v, dict) and all(
                isinstance(k, str) and isinstance(b, str) for k, b in v.items()),
            'watermark_store': lambda v: v in ['file', 'memory']
        }

        if key in validations:
            return validations[key](value)

        # Unknown keys are allowed
        return True

    def get_validation_info(self) -> Dict[str, str]:
        """
        Get validation information for configuration keys.

        Returns:
            Dictionary mapping keys to validation descriptions
        """
        return {
            'domain': 'Non-empty string',
            'batch_size': 'Integer between 1 and 10000',
            'claim_ttl': 'Integer between 1 and 604800 seconds',
            'storage_dir': 'String path or None',
            'log_level': 'One of: DEBUG, INFO, WARNING, ERROR, CRITICAL',
            'queue_backends': 'Mapping of job type to backend name (with a "default" entry)',
            'watermark_store': 'One of: file, memory'
        }

