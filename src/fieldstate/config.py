"""
Engine configuration.

Two layers:
- EngineConfig: process-wide defaults (diff allow-list, trigger mode, debug logging)
- FieldOptions: per-field configuration handed to register_field() and re-diffed on render

The process-wide EngineConfig is a module-level slot, swapped with
set_engine_config() and restored with reset_engine_config(). A Form may carry
its own EngineConfig, which takes precedence over the module default.
"""

from enum import Enum
from dataclasses import dataclass, field, fields as dataclass_fields, replace
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

INSPECT_PROPS_KEYS: Tuple[str, ...] = (
    'props',
    'rules',
    'required',
    'editable',
    'visible',
    'display',
)


class TriggerType(str, Enum):
    """When a binding asks for validation."""
    ON_CHANGE = 'onChange'
    ON_BLUR = 'onBlur'


@dataclass(frozen=True)
class EngineConfig:
    """Process-wide engine defaults."""
    inspect_keys: Tuple[str, ...] = INSPECT_PROPS_KEYS
    default_trigger_type: str = TriggerType.ON_CHANGE.value
    debug_notifications: bool = False  # INFO log for every delivery pass
    required_message: str = "This field is required"

    def with_overrides(self, **overrides: Any) -> 'EngineConfig':
        return replace(self, **overrides)


_DEFAULT_CONFIG = EngineConfig()
_engine_config: EngineConfig = _DEFAULT_CONFIG


def set_engine_config(config: EngineConfig) -> None:
    """Install ``config`` as the process-wide default."""
    global _engine_config
    _engine_config = config
    logger.debug(f"Engine config set: {config}")


def get_engine_config() -> EngineConfig:
    return _engine_config


def reset_engine_config() -> None:
    """Restore the built-in defaults. Used by tests."""
    global _engine_config
    _engine_config = _DEFAULT_CONFIG


# camelCase keys accepted from binding layers that speak the JS-style contract
_OPTION_ALIASES: Dict[str, str] = {
    'getValueFromEvent': 'get_value_from_event',
    'normalizeValue': 'normalize_value',
    'triggerType': 'trigger_type',
    'initialValue': 'initial_value',
}


@dataclass
class FieldOptions:
    """Configuration a binding supplies for one field.

    ``name``/``path`` are identity; changing either means a different field.
    The INSPECT_PROPS_KEYS subset is diffed on every render. Keys the engine
    does not know are kept in ``extra`` and folded into initial state.
    """
    name: Optional[str] = None
    path: Optional[str] = None
    value: Any = None
    initial_value: Any = None
    props: Dict[str, Any] = field(default_factory=dict)
    rules: List[Any] = field(default_factory=list)
    required: bool = False
    editable: bool = True
    visible: bool = True
    display: bool = True
    get_value_from_event: Optional[Callable[..., Any]] = None
    normalize_value: Optional[Callable[[Any], Any]] = None
    trigger_type: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def field_id(self) -> Optional[str]:
        """Registry key: path wins over name."""
        return self.path if self.path is not None else self.name

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> 'FieldOptions':
        known = {f.name for f in dataclass_fields(cls)}
        kwargs: Dict[str, Any] = {}
        extra: Dict[str, Any] = dict(options.get('extra') or {})
        for key, value in options.items():
            if key == 'extra':
                continue
            key = _OPTION_ALIASES.get(key, key)
            if key in known:
                kwargs[key] = value
            else:
                extra[key] = value
        kwargs['extra'] = extra
        return cls(**kwargs)

    @classmethod
    def coerce(cls, options: Any) -> 'FieldOptions':
        if isinstance(options, cls):
            return options
        if isinstance(options, Mapping):
            return cls.from_mapping(options)
        raise TypeError(f"Expected FieldOptions or mapping, got {type(options).__name__}")

    def get(self, key: str, default: Any = None) -> Any:
        """Mapping-style read so options and cached options diff the same way."""
        if key in self.extra:
            return self.extra[key]
        attr = _OPTION_ALIASES.get(key, key)
        if attr not in _FIELD_NAMES:
            return default
        return getattr(self, attr)

    def __contains__(self, key: str) -> bool:
        return key in self.extra or _OPTION_ALIASES.get(key, key) in _FIELD_NAMES

    def __getitem__(self, key: str) -> Any:
        if key not in self:
            raise KeyError(key)
        return self.get(key)

    def resolved_trigger_type(self, config: Optional[EngineConfig] = None) -> str:
        if self.trigger_type is not None:
            return self.trigger_type
        return (config or get_engine_config()).default_trigger_type


_FIELD_NAMES = frozenset(f.name for f in dataclass_fields(FieldOptions)) - {'extra'}
