"""Export of simulation results."""

from .export import export_csv, export_json, snapshots_to_frame

__all__ = ["snapshots_to_frame", "export_csv", "export_json"]
