"""FastQC wrapper."""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path
from typing import Optional, Sequence

from truncseeker.external.base import ExternalTool
from truncseeker.modules.samples import strip_fastq_suffix
from truncseeker.utils.atomic import atomic_outputs


def report_paths(fastq: Path, output_dir: Path) -> tuple[Path, Path]:
    """Return the ``(zip, html)`` paths FastQC writes for ``fastq``."""
    stem = strip_fastq_suffix(Path(fastq).name)
    return output_dir / f"{stem}_fastqc.zip", output_dir / f"{stem}_fastqc.html"


class FastQC(ExternalTool):
    """FastQC per-base quality reports."""

    tool_name = "fastqc"
    required_version = "0.11"

    def run_report(
        self,
        fastq: Path,
        output_dir: Path,
        additional_args: Optional[Sequence[str] | str] = None,
    ) -> Path:
        """Write ``<stem>_fastqc.zip`` and ``.html`` for ``fastq`` into ``output_dir``.

        FastQC writes into a scratch directory next to the final reports; the
        zip and html are moved into place only once FastQC exits cleanly.
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        zip_path, html_path = report_paths(fastq, output_dir)

        with atomic_outputs([zip_path, html_path]) as (zip_partial, html_partial):
            with tempfile.TemporaryDirectory(prefix=".fastqc_", dir=output_dir) as scratch:
                scratch_dir = Path(scratch)
                cmd = [
                    *self.command,
                    "--threads", str(self.threads),
                    "--outdir", str(scratch_dir),
                    *self.split_args(additional_args),
                    str(fastq),
                ]
                self.run(cmd, capture_output=True)
                produced_zip, produced_html = report_paths(fastq, scratch_dir)
                shutil.move(str(produced_zip), str(zip_partial))
                shutil.move(str(produced_html), str(html_partial))

        self.logger.info(f"FastQC report created: {zip_path}")
        return zip_path
