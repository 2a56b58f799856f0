"""Writes query results to the destinations a job configuration names."""
import logging
from pathlib import Path

import pandas as pd

from annotation_platform.jobs.config_loader import OutputSinkConfig

logger = logging.getLogger(__name__)

FILE_SINKS = {
    "csv": lambda df, path, index: df.to_csv(path, index=index),
    "tsv": lambda df, path, index: df.to_csv(path, sep="\t", index=index),
    "json": lambda df, path, index: df.to_json(path, orient="records", indent=2),
}


def write_output(df: pd.DataFrame, sink: OutputSinkConfig) -> None:
    """
    Send a query result to its configured sink.

    Raises:
        ValueError: If a file sink has no path.
    """
    sink_type = sink.sink_type
    sink_config = sink.config

    if sink_type == "display":
        num_rows = sink_config.num_rows or len(df)
        logger.info(f"Displaying {min(num_rows, len(df))} of {len(df)} rows:\n{df.head(num_rows).to_string(index=False)}")
    elif sink_type in FILE_SINKS:
        if not sink_config.path:
            logger.error(f"Output sink type '{sink_type}' requires 'path' in sink config.")
            raise ValueError(f"Missing path for {sink_type} sink.")
        path = Path(sink_config.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        FILE_SINKS[sink_type](df, path, sink_config.index)
        logger.info(f"Wrote {len(df)} rows to {path}")
    else:
        logger.warning(f"Unsupported sink_type: {sink_type}. Result not written.")
