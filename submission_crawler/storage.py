"""
Output Writer
Persists one text file per extracted entry and the optional run report.
"""

import json
import logging
from pathlib import Path
from typing import Union

from .errors import WriteFailure
from .models import CrawlResult, OutputRecord

logger = logging.getLogger(__name__)


class OutputWriter:
    """
    Whole-file writes into a single output directory.

    Each record is written exactly once under its own name, so concurrent
    workers need no locking.  Two records with the same name overwrite each
    other; the last write wins.
    """

    def __init__(self, output_dir: Union[str, Path]):
        self.output_dir = Path(output_dir)

    def ensure_output_dir(self) -> Path:
        """Create the output directory if needed."""
        if not self.output_dir.exists():
            try:
                self.output_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise WriteFailure(
                    f"Error creating directory {self.output_dir}: {e}"
                ) from e
            logger.info(f"Created output directory: {self.output_dir}")
        return self.output_dir

    def write(self, record: OutputRecord) -> Path:
        """Write ``record`` and return its path."""
        path = self.output_dir / record.file_name
        try:
            path.write_bytes(record.content)
        except OSError as e:
            raise WriteFailure(f"Could not write {path}: {e}") from e
        return path


def export_json(result: CrawlResult, filepath: str) -> str:
    """Export the run report (stats, saved files, errors) to JSON."""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(result.to_dict(), f, indent=2, ensure_ascii=False)
    return str(path.absolute())
