"""Export functionality for CSV and JSON."""

import json
from dataclasses import asdict
from typing import Sequence

import pandas as pd

from ..engine.fixed_point import WAD, from_units
from ..engine.pool import LedgerSnapshot
from ..simulation.runner import SimulationResult


def snapshots_to_frame(snapshots: Sequence[LedgerSnapshot], token_decimals: int = 18) -> pd.DataFrame:
    """
    Convert ledger snapshots to a DataFrame.

    Raw integer columns are kept exact (object dtype where they exceed int64);
    `*_tokens` and `index_float` columns are float views for plotting.
    """
    data = []
    for snapshot in snapshots:
        row = asdict(snapshot)
        row['outstanding'] = snapshot.outstanding
        row['conservation_gap'] = snapshot.conservation_gap
        row['t_days'] = snapshot.t / 86_400
        row['index_float'] = snapshot.index / WAD
        row['rate_float'] = snapshot.campaign_rate / WAD
        for name in ('total_accrued', 'total_claimed', 'total_staked', 'total_pending_redemption'):
            row[f'{name}_tokens'] = float(from_units(getattr(snapshot, name), token_decimals))
        data.append(row)

    return pd.DataFrame(data)


def export_csv(result: SimulationResult, filepath: str):
    """Export simulation snapshots to CSV."""
    df = snapshots_to_frame(result.snapshots, result.config.pool.token_decimals)
    df.to_csv(filepath, index=False)


def export_json(result: SimulationResult, filepath: str):
    """Export simulation results to JSON."""
    export_data = {
        'config': result.config.to_dict(),
        'config_hash': result.config.compute_hash(),
        'snapshots': [asdict(snapshot) for snapshot in result.snapshots],
        'final_metrics': result.final_metrics,
        'rejections': result.rejections,
        'actions': result.actions,
        'conservation_errors': result.conservation_errors,
    }

    with open(filepath, 'w') as f:
        json.dump(export_data, f, indent=2)
