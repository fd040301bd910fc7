from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict
import yaml

def load_yaml(path: str | Path) -> Dict[str, Any]:
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}

@dataclass(frozen=True)
class LoadedConfig:
    vault: Dict[str, Any]
    scenario: Dict[str, Any]

def load_all(
    vault_path: str = "config/vault.yaml",
    scenario_path: str = "config/scenario.yaml",
) -> LoadedConfig:
    return LoadedConfig(
        vault=load_yaml(vault_path),
        scenario=load_yaml(scenario_path) if Path(scenario_path).exists() else {},
    )
