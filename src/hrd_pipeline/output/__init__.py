"""Output generation: assigned descriptions and weight vector settings reports."""

from hrd_pipeline.output.writers import (
    settings_record,
    write_description_output,
    write_settings_report,
)

__all__ = [
    "settings_record",
    "write_description_output",
    "write_settings_report",
]
