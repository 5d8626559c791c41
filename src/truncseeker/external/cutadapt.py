"""Cutadapt wrapper for paired-end primer removal."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

from Bio.Seq import reverse_complement

from truncseeker.external.base import ExternalTool


class Cutadapt(ExternalTool):
    """Cutadapt primer/adapter trimming."""

    tool_name = "cutadapt"
    required_version = "3.0"

    def build_pair_command(
        self,
        forward_in: Path,
        reverse_in: Path,
        forward_out: Path,
        reverse_out: Path,
        forward_primer: str,
        reverse_primer: str,
        minimum_length: int = 1,
        additional_args: Optional[Sequence[str] | str] = None,
    ) -> list[str]:
        """Primers are trimmed at the 5' end of their own read and, reverse
        complemented, at the 3' end of the mate (read-through)."""
        return [
            *self.command,
            "-g", forward_primer,
            "-a", reverse_complement(reverse_primer),
            "-G", reverse_primer,
            "-A", reverse_complement(forward_primer),
            "--minimum-length", str(minimum_length),
            "--cores", str(self.threads),
            *self.split_args(additional_args),
            "-o", str(forward_out),
            "-p", str(reverse_out),
            str(forward_in),
            str(reverse_in),
        ]

    def trim_pair(
        self,
        forward_in: Path,
        reverse_in: Path,
        forward_out: Path,
        reverse_out: Path,
        forward_primer: str,
        reverse_primer: str,
        minimum_length: int = 1,
        additional_args: Optional[Sequence[str] | str] = None,
    ) -> None:
        """Trim one read pair into ``forward_out``/``reverse_out``."""
        cmd = self.build_pair_command(
            forward_in,
            reverse_in,
            forward_out,
            reverse_out,
            forward_primer,
            reverse_primer,
            minimum_length,
            additional_args,
        )
        Path(forward_out).parent.mkdir(parents=True, exist_ok=True)
        stdout, _ = self.run(cmd, capture_output=True)
        if stdout:
            self.logger.debug(f"cutadapt report: {stdout[-1000:]}")
        self.logger.info(f"Trimmed pair written to: {forward_out}, {reverse_out}")
