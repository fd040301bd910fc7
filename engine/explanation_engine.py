from __future__ import annotations
from typing import List
from engine.move_planner import Move

def explain_moves(moves: List[Move]) -> List[str]:
    return [f"{m.action} {m.amount:,} {m.handle}  |  {m.reason}" for m in moves]
