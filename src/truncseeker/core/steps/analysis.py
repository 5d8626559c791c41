"""Analysis stage: QIIME 2 import, DADA2 denoising, phylogeny and taxonomy.

Artifacts are numbered in execution order inside ``config.analysis_dir``.
DADA2 consumes the truncation lengths written by the qc stage and refuses
to run when either of them is missing or 0.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

import pandas as pd

from truncseeker.config import Config
from truncseeker.core.pipeline import PipelineExecutor
from truncseeker.core.pipeline_types import PipelineReport, StepDescriptor
from truncseeker.core.steps import ToolProvider, checkpoint_store
from truncseeker.exceptions import AggregationEmptyError, PipelineError, PreconditionError
from truncseeker.modules.samples import DirectionMatcher, discover_samples
from truncseeker.modules.trunc_stats import read_parameter_record
from truncseeker.utils.atomic import atomic_outputs
from truncseeker.utils.logging import get_logger

logger = get_logger("steps.analysis")

MANIFEST_COLUMNS = ["sample-id", "forward-absolute-filepath", "reverse-absolute-filepath"]

ARTIFACTS = {
    "manifest": "manifest.tsv",
    "demux": "01_demultiplexed_seqs.qza",
    "demux_summary": "02_demux_summary.qzv",
    "table": "03_feature_table.qza",
    "rep_seqs": "04_rep_seqs.qza",
    "dada2_stats": "05_dada2_stats.qza",
    "dada2_stats_view": "05_dada2_stats.qzv",
    "table_summary": "06_feature_table_summary.qzv",
    "rep_seqs_summary": "07_rep_seqs_summary.qzv",
    "alignment": "08_aligned_rep_seqs.qza",
    "masked_alignment": "09_masked_aligned_rep_seqs.qza",
    "unrooted_tree": "10_unrooted_tree.qza",
    "rooted_tree": "11_rooted_tree.qza",
    "taxonomy": "12_taxonomy.qza",
    "taxonomy_table": "13_taxonomy_tabulated.qzv",
    "taxa_barplot": "14_taxa_barplots.qzv",
    "core_metrics": "15_core_metrics",
}


def write_manifest(config: Config, path: Path) -> Path:
    """Write a paired-end manifest for the trimmed reads.

    Raises:
        PipelineError: no trimmed pairs were found.
    """
    matcher = DirectionMatcher(config.forward_pattern, config.reverse_pattern)
    samples = discover_samples(config.trimmed_dir, matcher)
    if not samples:
        raise PipelineError(f"No trimmed read pairs found in {config.trimmed_dir}")

    df = pd.DataFrame(
        [
            (s.sample_id, str(s.forward.resolve()), str(s.reverse.resolve()))
            for s in samples
        ],
        columns=MANIFEST_COLUMNS,
    )
    with atomic_outputs([path]) as (partial,):
        df.to_csv(partial, sep="\t", index=False)
    logger.info(f"Manifest with {len(df)} samples written to {path}")
    return Path(path)


def truncation_lengths(config: Config) -> tuple[int, int]:
    """Load the qc-stage truncation lengths, insisting both are usable."""
    params_file = config.params_file
    if not params_file.exists():
        raise PreconditionError(
            f"Truncation parameter file not found: {params_file}; run the qc stage first"
        )
    record = read_parameter_record(params_file)
    try:
        return record.require()
    except AggregationEmptyError as e:
        raise PreconditionError(str(e)) from e


def _require_file(path: Optional[Path], what: str) -> Callable[[], None]:
    def check() -> None:
        if path is None or not Path(path).exists():
            raise PreconditionError(f"{what} not found: {path}")

    return check


class AnalysisStepBuilder:
    """Assemble the analysis stage for a configuration."""

    def __init__(self, config: Config, tools: Optional[ToolProvider] = None):
        self.config = config
        self.tools = tools or ToolProvider(config)
        self.out = config.analysis_dir

    def path(self, key: str) -> Path:
        return self.out / ARTIFACTS[key]

    def _produce(self, keys: tuple[str, ...], run: Callable[..., None]) -> Callable[[], None]:
        """Action that hands partial paths for ``keys`` to ``run``."""
        targets = [self.path(k) for k in keys]

        def action() -> None:
            with atomic_outputs(targets) as partials:
                run(*partials)

        return action

    def _step(self, name, keys, run, required=True, description="", precondition=None) -> StepDescriptor:
        return StepDescriptor(
            name=name,
            artifacts=tuple(self.path(k) for k in keys),
            action=self._produce(keys, run),
            required=required,
            description=description,
            precondition=precondition,
        )

    @property
    def qiime(self):
        return self.tools.qiime

    @property
    def manifest_path(self) -> Path:
        return Path(self.config.manifest) if self.config.manifest else self.path("manifest")

    def _check_truncation(self) -> None:
        truncation_lengths(self.config)

    def _dada2(self, table: Path, rep_seqs: Path, stats: Path) -> None:
        trunc_f, trunc_r = truncation_lengths(self.config)
        params = self.config.tools.qiime
        logger.info(f"DADA2 truncation lengths: forward {trunc_f}, reverse {trunc_r}")
        self.qiime.dada2_denoise_paired(
            self.path("demux"),
            trunc_f,
            trunc_r,
            table,
            rep_seqs,
            stats,
            trim_left_f=params.get("trim_left_f", 0),
            trim_left_r=params.get("trim_left_r", 0),
        )

    def build(self) -> list[StepDescriptor]:
        cfg = self.config
        steps: list[StepDescriptor] = []

        if cfg.manifest:
            import_precondition = _require_file(cfg.manifest, "Manifest")
        else:
            import_precondition = None
            steps.append(
                self._step(
                    "manifest",
                    ("manifest",),
                    lambda out: write_manifest(cfg, out),
                    description="Write the paired-end manifest for the trimmed reads",
                )
            )

        steps += [
            self._step(
                "import",
                ("demux",),
                lambda out: self.qiime.import_paired(self.manifest_path, out),
                description="Import paired-end reads into QIIME 2",
                precondition=import_precondition,
            ),
            self._step(
                "demux_summary",
                ("demux_summary",),
                lambda out: self.qiime.demux_summarize(self.path("demux"), out),
                required=False,
                description="Summarize demultiplexed reads",
            ),
            self._step(
                "dada2",
                ("table", "rep_seqs", "dada2_stats"),
                self._dada2,
                description="Denoise with DADA2 using the estimated truncation lengths",
                precondition=self._check_truncation,
            ),
            self._step(
                "dada2_stats",
                ("dada2_stats_view",),
                lambda out: self.qiime.metadata_tabulate(self.path("dada2_stats"), out),
                required=False,
                description="Tabulate DADA2 denoising statistics",
            ),
            self._step(
                "table_summary",
                ("table_summary",),
                lambda out: self.qiime.feature_table_summarize(self.path("table"), out, cfg.metadata),
                description="Summarize the feature table",
            ),
            self._step(
                "rep_seqs_summary",
                ("rep_seqs_summary",),
                lambda out: self.qiime.tabulate_seqs(self.path("rep_seqs"), out),
                description="Tabulate representative sequences",
            ),
            self._step(
                "align",
                ("alignment",),
                lambda out: self.qiime.alignment_mafft(self.path("rep_seqs"), out),
                description="Align representative sequences (MAFFT)",
            ),
            self._step(
                "mask",
                ("masked_alignment",),
                lambda out: self.qiime.alignment_mask(self.path("alignment"), out),
                description="Mask the alignment",
            ),
            self._step(
                "tree",
                ("unrooted_tree",),
                lambda out: self.qiime.fasttree(self.path("masked_alignment"), out),
                description="Build the phylogenetic tree (FastTree)",
            ),
            self._step(
                "root_tree",
                ("rooted_tree",),
                lambda out: self.qiime.midpoint_root(self.path("unrooted_tree"), out),
                description="Midpoint-root the tree",
            ),
        ]

        if cfg.classifier:
            steps += [
                self._step(
                    "taxonomy",
                    ("taxonomy",),
                    lambda out: self.qiime.classify_sklearn(self.path("rep_seqs"), cfg.classifier, out),
                    description="Assign taxonomy (naive Bayes classifier)",
                    precondition=_require_file(cfg.classifier, "Classifier"),
                ),
                self._step(
                    "taxonomy_table",
                    ("taxonomy_table",),
                    lambda out: self.qiime.metadata_tabulate(self.path("taxonomy"), out),
                    description="Tabulate taxonomy assignments",
                ),
                self._step(
                    "taxa_barplot",
                    ("taxa_barplot",),
                    lambda out: self.qiime.taxa_barplot(self.path("table"), self.path("taxonomy"), out, cfg.metadata),
                    required=False,
                    description="Taxa barplots",
                ),
            ]
        else:
            logger.info("No classifier configured; taxonomy steps are not scheduled")

        if cfg.sampling_depth > 0 and cfg.metadata:
            steps.append(
                self._step(
                    "core_metrics",
                    ("core_metrics",),
                    lambda out: self.qiime.core_metrics_phylogenetic(
                        self.path("table"), self.path("rooted_tree"), cfg.metadata, cfg.sampling_depth, out
                    ),
                    required=False,
                    description=f"Core phylogenetic diversity metrics (depth {cfg.sampling_depth})",
                    precondition=_require_file(cfg.metadata, "Sample metadata"),
                )
            )

        return steps


def build_analysis_steps(config: Config, tools: Optional[ToolProvider] = None) -> list[StepDescriptor]:
    return AnalysisStepBuilder(config, tools).build()


def run_analysis_stage(
    config: Config,
    tools: Optional[ToolProvider] = None,
    strict: Optional[bool] = None,
) -> PipelineReport:
    steps = build_analysis_steps(config, tools)
    config.analysis_dir.mkdir(parents=True, exist_ok=True)
    executor = PipelineExecutor(
        config, steps, checkpoint_store(config, config.analysis_dir, strict), stage="analysis"
    )
    return executor.run()
