"""
Addressli — Shared Base Tool
=============================
:class:`GeoTool` fixes the order every tool runs in: validate, process,
report.  Subclasses fill in :meth:`~GeoTool.validate_inputs` and
:meth:`~GeoTool.process` and list what they wrote via
:meth:`~GeoTool.written_files`::

    class MyTool(GeoTool):
        def validate_inputs(self) -> None: ...
        def process(self) -> None: ...
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path

# Modules log to children of this logger:
#   logging.getLogger("addressli.<tool>.<module>")
logger = logging.getLogger("addressli")

LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s — %(message)s"


class GeoTool(ABC):
    """Base class for Addressli tools.

    Attributes:
        input_path: The file the tool reads.
        output_dir: Directory the tool writes into.
        verbose: Log at DEBUG instead of INFO.
    """

    def __init__(
        self,
        input_path: Path,
        output_dir: Path,
        *,
        verbose: bool = False,
    ) -> None:
        self.input_path: Path = Path(input_path)
        self.output_dir: Path = Path(output_dir)
        self.verbose: bool = verbose

        self._configure_logging()

    @abstractmethod
    def validate_inputs(self) -> None:
        """Raise an :class:`~shared.python.exceptions.InputValidationError`
        subclass if the tool cannot start."""

    @abstractmethod
    def process(self) -> None:
        """Do the work.  Only called once validation has passed."""

    def written_files(self) -> list[Path]:
        """Files produced by the last :meth:`process` call."""
        return []

    def run(self) -> None:
        """Validate, process, then log what was written.

        Exceptions from either step propagate unchanged.
        """
        logger.info("Starting %s on %s", self.__class__.__name__, self.input_path.name)
        start = time.perf_counter()

        self.validate_inputs()
        self.process()

        self._report_success(time.perf_counter() - start)

    def _report_success(self, elapsed: float) -> None:
        written = self.written_files()
        logger.info(
            "%s finished in %.2fs, %d file(s) written to %s",
            self.__class__.__name__, elapsed, len(written), self.output_dir,
        )
        for path in written:
            logger.info("  wrote %s", path.name)

    def _configure_logging(self) -> None:
        # One console handler per process, however many tools are built.
        if not logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%H:%M:%S"))
            logger.addHandler(handler)

        logger.setLevel(logging.DEBUG if self.verbose else logging.INFO)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"input_path={self.input_path!r}, output_dir={self.output_dir!r})"
        )
