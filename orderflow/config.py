"""
orderflow configuration system.

Configuration is loaded in this priority order:
1. Values set via orderflow.configure() (highest priority)
2. ORDERFLOW_* environment variables
3. Values from orderflow.config.yaml in the current directory
   (or the file named by ORDERFLOW_CONFIG)
4. Default values

Example orderflow.config.yaml:

    journal:
      backend: file
      path: ./orderflow_data/journal
    orders:
      store:
        backend: file
        path: ./orderflow_data/orders
      capacity_ceiling: 5
      timeouts:
        acceptance: 5m
        ready: 5m
        completion: 10m
    events:
      bus_name: bartender-orders-bus
      source: bartender.orders
      history_limit: 1000
    registrar:
      max_attempts: 3
      retry_delay: exponential

Usage:
    >>> import orderflow
    >>> orderflow.configure(
    ...     journal=InMemoryJournalStore(),
    ...     capacity_ceiling=2,
    ... )
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

import yaml

from orderflow.context.base import RetryPolicy

if TYPE_CHECKING:
    from orderflow.storage.base import JournalStore

CONFIG_FILE_NAME = "orderflow.config.yaml"


def _load_yaml_config() -> Dict[str, Any]:
    """
    Load configuration from orderflow.config.yaml.

    Returns:
        Configuration dictionary, empty dict if the file does not exist
    """
    config_path = Path(os.getenv("ORDERFLOW_CONFIG", Path.cwd() / CONFIG_FILE_NAME))
    if not config_path.exists():
        return {}

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def create_journal(backend: str = "memory", path: str = "./orderflow_data/journal") -> "JournalStore":
    """Create a journal store from a backend name."""
    if backend == "file":
        from orderflow.storage.file import FileJournalStore

        return FileJournalStore(base_path=path)
    if backend == "memory":
        from orderflow.storage.memory import InMemoryJournalStore

        return InMemoryJournalStore()

    raise ValueError(f"Unknown journal backend: {backend!r} (expected 'memory' or 'file')")


def _parse_retry_delay(value: Any) -> Union[str, int, float, List[float]]:
    if isinstance(value, str) and value != "exponential":
        if "," in value:
            return [float(v) for v in value.split(",")]
        return float(value)
    return value


@dataclass
class OrderflowConfig:
    """
    Global configuration for orderflow.

    Attributes:
        journal: Journal store for executions (built from journal_backend if unset)
        journal_backend: "memory" or "file"
        journal_path: Base directory of the file journal
        order_store_backend: "memory" or "file"
        order_store_path: Base directory of the file order store
        event_bus_name: Name of the bus order events are published to
        event_source: Source attached to every published order event
        event_history_limit: Published events the in-process bus keeps for inspection
        capacity_ceiling: Maximum number of simultaneously accepted orders
        acceptance_timeout: How long an order waits for a bartender
        ready_timeout: How long an accepted order waits to be ready
        completion_timeout: How long a ready order waits for pickup
        registrar_max_attempts: Registrar invocations before a wait fails
        registrar_retry_delay: Backoff strategy between registrar attempts
    """

    journal: Optional["JournalStore"] = None
    journal_backend: str = "memory"
    journal_path: str = "./orderflow_data/journal"

    order_store_backend: str = "memory"
    order_store_path: str = "./orderflow_data/orders"

    event_bus_name: str = "bartender-orders-bus"
    event_source: str = "bartender.orders"
    event_history_limit: int = 1000

    capacity_ceiling: int = 5
    acceptance_timeout: str = "5m"
    ready_timeout: str = "5m"
    completion_timeout: str = "10m"

    registrar_max_attempts: int = 3
    registrar_retry_delay: Union[str, int, float, List[float]] = field(
        default="exponential"
    )

    def get_journal(self) -> "JournalStore":
        """Return the journal store, creating it from the backend settings once."""
        if self.journal is None:
            self.journal = create_journal(self.journal_backend, self.journal_path)
        return self.journal

    def registrar_retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.registrar_max_attempts,
            delay=self.registrar_retry_delay,
        )


def _values_from_yaml(data: Dict[str, Any]) -> Dict[str, Any]:
    """Map the nested YAML layout to flat config attributes."""
    values: Dict[str, Any] = {}

    journal = data.get("journal") or {}
    if "backend" in journal:
        values["journal_backend"] = journal["backend"]
    if "path" in journal:
        values["journal_path"] = journal["path"]

    orders = data.get("orders") or {}
    store = orders.get("store") or {}
    if "backend" in store:
        values["order_store_backend"] = store["backend"]
    if "path" in store:
        values["order_store_path"] = store["path"]
    if "capacity_ceiling" in orders:
        values["capacity_ceiling"] = int(orders["capacity_ceiling"])

    timeouts = orders.get("timeouts") or {}
    for key in ("acceptance", "ready", "completion"):
        if key in timeouts:
            values[f"{key}_timeout"] = str(timeouts[key])

    events = data.get("events") or {}
    if "bus_name" in events:
        values["event_bus_name"] = events["bus_name"]
    if "source" in events:
        values["event_source"] = events["source"]
    if "history_limit" in events:
        values["event_history_limit"] = int(events["history_limit"])

    registrar = data.get("registrar") or {}
    if "max_attempts" in registrar:
        values["registrar_max_attempts"] = int(registrar["max_attempts"])
    if "retry_delay" in registrar:
        values["registrar_retry_delay"] = registrar["retry_delay"]

    return values


_ENV_OVERRIDES = {
    "ORDERFLOW_JOURNAL_BACKEND": ("journal_backend", str),
    "ORDERFLOW_JOURNAL_PATH": ("journal_path", str),
    "ORDERFLOW_STORE_BACKEND": ("order_store_backend", str),
    "ORDERFLOW_STORE_PATH": ("order_store_path", str),
    "ORDERFLOW_EVENT_BUS_NAME": ("event_bus_name", str),
    "ORDERFLOW_EVENT_SOURCE": ("event_source", str),
    "ORDERFLOW_EVENT_HISTORY_LIMIT": ("event_history_limit", int),
    "ORDERFLOW_CAPACITY_CEILING": ("capacity_ceiling", int),
    "ORDERFLOW_ACCEPTANCE_TIMEOUT": ("acceptance_timeout", str),
    "ORDERFLOW_READY_TIMEOUT": ("ready_timeout", str),
    "ORDERFLOW_COMPLETION_TIMEOUT": ("completion_timeout", str),
    "ORDERFLOW_REGISTRAR_MAX_ATTEMPTS": ("registrar_max_attempts", int),
    "ORDERFLOW_REGISTRAR_RETRY_DELAY": ("registrar_retry_delay", _parse_retry_delay),
}


def _values_from_env() -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for env_name, (attr, cast) in _ENV_OVERRIDES.items():
        raw = os.getenv(env_name)
        if raw is not None and raw != "":
            values[attr] = cast(raw)
    return values


def load_config() -> OrderflowConfig:
    """Build a config from YAML then environment overrides."""
    values = _values_from_yaml(_load_yaml_config())
    values.update(_values_from_env())
    return OrderflowConfig(**values)


# Global singleton
_config: Optional[OrderflowConfig] = None


def configure(**kwargs: Any) -> None:
    """
    Configure orderflow defaults.

    Any attribute of OrderflowConfig can be set, e.g. journal,
    capacity_ceiling or acceptance_timeout.

    Example:
        >>> import orderflow
        >>> from orderflow.storage import InMemoryJournalStore
        >>>
        >>> orderflow.configure(journal=InMemoryJournalStore(), capacity_ceiling=1)
    """
    config = get_config()
    valid_keys = [f.name for f in fields(OrderflowConfig)]

    for key, value in kwargs.items():
        if key not in valid_keys:
            raise ValueError(
                f"Unknown config option: {key}. Valid options: {', '.join(valid_keys)}"
            )
        setattr(config, key, value)


def get_config() -> OrderflowConfig:
    """
    Get the current configuration.

    If not yet configured, loads it from orderflow.config.yaml and the
    environment.
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def get_journal() -> "JournalStore":
    return get_config().get_journal()


def reset_config() -> None:
    """
    Reset configuration to defaults.

    Primarily used for testing.
    """
    global _config
    _config = None
