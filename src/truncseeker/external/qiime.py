"""QIIME 2 command-line wrapper.

One method per action used by the analysis stage. Output paths are passed in
by the caller, which is responsible for writing them atomically.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from truncseeker.external.base import ExternalTool

PAIRED_END_TYPE = "SampleData[PairedEndSequencesWithQuality]"
PAIRED_END_MANIFEST_FORMAT = "PairedEndFastqManifestPhred33V2"


class Qiime2(ExternalTool):
    """QIIME 2 (``qiime``) invoked through a configurable command prefix."""

    tool_name = "qiime"
    version_args = ("info",)
    version_regex = r"QIIME 2 release:\s*(\d+\.\d+)"

    def _qiime(self, *args: str) -> None:
        stdout, _ = self.run([*self.command, *args], capture_output=True)
        if stdout:
            self.logger.debug(f"qiime output: {stdout[-500:]}")

    # -- import / demux ---------------------------------------------------

    def import_paired(self, manifest: Path, output: Path) -> None:
        self._qiime(
            "tools", "import",
            "--type", PAIRED_END_TYPE,
            "--input-path", str(manifest),
            "--output-path", str(output),
            "--input-format", PAIRED_END_MANIFEST_FORMAT,
        )

    def demux_summarize(self, demux: Path, output: Path) -> None:
        self._qiime("demux", "summarize", "--i-data", str(demux), "--o-visualization", str(output))

    # -- denoising ----------------------------------------------------------

    def dada2_denoise_paired(
        self,
        demux: Path,
        trunc_len_f: int,
        trunc_len_r: int,
        table: Path,
        rep_seqs: Path,
        stats: Path,
        trim_left_f: int = 0,
        trim_left_r: int = 0,
    ) -> None:
        self._qiime(
            "dada2", "denoise-paired",
            "--i-demultiplexed-seqs", str(demux),
            "--p-trim-left-f", str(trim_left_f),
            "--p-trim-left-r", str(trim_left_r),
            "--p-trunc-len-f", str(trunc_len_f),
            "--p-trunc-len-r", str(trunc_len_r),
            "--p-n-threads", str(self.threads),
            "--o-table", str(table),
            "--o-representative-sequences", str(rep_seqs),
            "--o-denoising-stats", str(stats),
            "--verbose",
        )

    # -- summaries ----------------------------------------------------------

    def metadata_tabulate(self, input_file: Path, output: Path) -> None:
        self._qiime("metadata", "tabulate", "--m-input-file", str(input_file), "--o-visualization", str(output))

    def feature_table_summarize(self, table: Path, output: Path, metadata: Optional[Path] = None) -> None:
        args = ["feature-table", "summarize", "--i-table", str(table), "--o-visualization", str(output)]
        if metadata:
            args += ["--m-sample-metadata-file", str(metadata)]
        self._qiime(*args)

    def tabulate_seqs(self, rep_seqs: Path, output: Path) -> None:
        self._qiime("feature-table", "tabulate-seqs", "--i-data", str(rep_seqs), "--o-visualization", str(output))

    # -- phylogeny ----------------------------------------------------------

    def alignment_mafft(self, rep_seqs: Path, output: Path) -> None:
        self._qiime(
            "alignment", "mafft",
            "--i-sequences", str(rep_seqs),
            "--p-n-threads", str(self.threads),
            "--o-alignment", str(output),
        )

    def alignment_mask(self, alignment: Path, output: Path) -> None:
        self._qiime("alignment", "mask", "--i-alignment", str(alignment), "--o-masked-alignment", str(output))

    def fasttree(self, alignment: Path, output: Path) -> None:
        self._qiime(
            "phylogeny", "fasttree",
            "--i-alignment", str(alignment),
            "--p-n-threads", str(self.threads),
            "--o-tree", str(output),
        )

    def midpoint_root(self, tree: Path, output: Path) -> None:
        self._qiime("phylogeny", "midpoint-root", "--i-tree", str(tree), "--o-rooted-tree", str(output))

    # -- taxonomy -----------------------------------------------------------

    def classify_sklearn(self, rep_seqs: Path, classifier: Path, output: Path) -> None:
        self._qiime(
            "feature-classifier", "classify-sklearn",
            "--i-reads", str(rep_seqs),
            "--i-classifier", str(classifier),
            "--p-n-jobs", str(self.threads),
            "--o-classification", str(output),
        )

    def taxa_barplot(
        self, table: Path, taxonomy: Path, output: Path, metadata: Optional[Path] = None
    ) -> None:
        args = [
            "taxa", "barplot",
            "--i-table", str(table),
            "--i-taxonomy", str(taxonomy),
            "--o-visualization", str(output),
        ]
        if metadata:
            args += ["--m-metadata-file", str(metadata)]
        self._qiime(*args)

    # -- diversity ----------------------------------------------------------

    def core_metrics_phylogenetic(
        self, table: Path, tree: Path, metadata: Path, sampling_depth: int, output_dir: Path
    ) -> None:
        """``output_dir`` must not exist; QIIME 2 creates it."""
        self._qiime(
            "diversity", "core-metrics-phylogenetic",
            "--i-phylogeny", str(tree),
            "--i-table", str(table),
            "--p-sampling-depth", str(sampling_depth),
            "--m-metadata-file", str(metadata),
            "--p-n-jobs-or-threads", str(self.threads),
            "--output-dir", str(output_dir),
        )
