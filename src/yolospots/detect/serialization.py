"""YAML serialization for YoloPredictConfig.

Requires pyyaml. Raises ImportError with clear install instructions
if pyyaml is not available.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from yolospots.core.exceptions import ConfigurationError
from yolospots.detect.yolo_config import YoloPredictConfig

_KNOWN_KEYS = ("model_path", "conf", "iou", "use_gpu", "executable", "conda_env")


def _require_yaml() -> Any:
    """Import and return the yaml module, or raise a helpful error."""
    try:
        import yaml

        return yaml
    except ImportError:
        raise ImportError(
            "pyyaml is required for config serialization. "
            "Install it with: pip install pyyaml"
        ) from None


def config_to_dict(config: YoloPredictConfig) -> dict[str, Any]:
    """User-facing fields of a config. Run folders are not included."""
    return {
        "model_path": config.model_path,
        "conf": config.conf,
        "iou": config.iou,
        "use_gpu": config.use_gpu,
        "executable": config.executable,
        "conda_env": config.conda_env,
    }


def config_to_yaml(config: YoloPredictConfig, path: Path) -> None:
    """Serialize a YoloPredictConfig to a YAML file.

    Args:
        config: The config to serialize.
        path: File path to write.
    """
    yaml = _require_yaml()

    with open(path, "w") as f:
        yaml.dump(config_to_dict(config), f, default_flow_style=False, sort_keys=False)


def config_from_yaml(path: Path) -> YoloPredictConfig:
    """Deserialize a YoloPredictConfig from a YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        A YoloPredictConfig. Keys absent from the file keep their defaults.

    Raises:
        FileNotFoundError: If the YAML file doesn't exist.
        ConfigurationError: If the YAML is not a mapping, has unknown keys or
            values of the wrong type.
    """
    yaml = _require_yaml()

    path = Path(path)
    with open(path) as f:
        data = yaml.safe_load(f)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Invalid config YAML: expected a mapping, got {type(data).__name__}")

    unknown = sorted(set(data) - set(_KNOWN_KEYS))
    if unknown:
        raise ConfigurationError(f"Invalid config YAML: unknown key(s) {unknown}")

    kwargs: dict[str, Any] = {}
    for key in ("model_path", "executable"):
        if key in data:
            if not isinstance(data[key], str):
                raise ConfigurationError(f"Invalid config YAML: '{key}' must be a string")
            kwargs[key] = data[key]
    for key in ("conf", "iou"):
        if key in data:
            value = data[key]
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(f"Invalid config YAML: '{key}' must be a number")
            kwargs[key] = float(value)
    if "use_gpu" in data:
        if not isinstance(data["use_gpu"], bool):
            raise ConfigurationError("Invalid config YAML: 'use_gpu' must be true or false")
        kwargs["use_gpu"] = data["use_gpu"]
    if data.get("conda_env") is not None:
        if not isinstance(data["conda_env"], str):
            raise ConfigurationError("Invalid config YAML: 'conda_env' must be a string")
        kwargs["conda_env"] = data["conda_env"]

    return YoloPredictConfig(**kwargs)
