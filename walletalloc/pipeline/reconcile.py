from __future__ import annotations

from typing import Dict, List, Tuple

from ..models import PerBarca, PerBarcaActual


def percent_of_total(value: float, total: float) -> float:
    if total > 0:
        return (value / total) * 100.0
    return 0.0


def reconcile_barcas(
    barca_actuals: Dict[str, float],
    barca_targets: Dict[str, float],
    total_value: float,
) -> Tuple[List[PerBarca], List[PerBarcaActual]]:
    """Merge held value per barca with the target table for the active market.

    Every barca from either side gets a PerBarca row: targeted barcas without
    holdings show value 0, held barcas without a target show target 0 and a
    deviation equal to their whole share. PerBarcaActual lists only barcas
    that currently hold value.
    """
    per_barca = []
    for barca, target_percent in barca_targets.items():
        value = barca_actuals.get(barca, 0.0)
        current_percent = percent_of_total(value, total_value)
        per_barca.append(
            PerBarca(
                barca=barca,
                value=value,
                target_percent=target_percent,
                current_percent=current_percent,
                deviation=current_percent - target_percent,
            )
        )
    for barca, value in barca_actuals.items():
        if barca in barca_targets:
            continue
        current_percent = percent_of_total(value, total_value)
        per_barca.append(
            PerBarca(
                barca=barca,
                value=value,
                target_percent=0.0,
                current_percent=current_percent,
                deviation=current_percent,
            )
        )
    per_barca.sort(key=lambda row: row.barca)

    per_barca_actual = [
        PerBarcaActual(barca=barca, value=value, current_percent=percent_of_total(value, total_value))
        for barca, value in sorted(barca_actuals.items())
        if value != 0
    ]
    return per_barca, per_barca_actual
