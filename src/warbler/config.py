"""Application configuration.

AppConfig is a frozen dataclass: immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass

from warbler.fsnotify import CHECK_INTERVAL


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(watch=True, check_interval=1.0)
    """

    # Hot reload: poll the filesystem and feed changes to the view engines
    watch: bool = False
    check_interval: float = CHECK_INTERVAL

    # Response buffers kept for reuse; 0 disables pooling
    buffer_pool_size: int = 100
