from __future__ import annotations
from dataclasses import asdict
from typing import Dict, Any, List
from engine.move_planner import Move
from engine.vault import VaultEvent

def explainability_report(moves: List[Move], events: List[VaultEvent], summary: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "summary": summary,
        "events": [asdict(e) for e in events],
        "moves": [asdict(m) for m in moves],
    }
