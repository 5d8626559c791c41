"""External tool wrappers (TruncSeeker).

- Cutadapt: primer removal from paired reads
- FastQC: per-base quality reports
- Qiime2: import, DADA2 denoising, phylogeny, taxonomy and diversity actions
"""

from truncseeker.external.base import ExternalTool
from truncseeker.external.cutadapt import Cutadapt
from truncseeker.external.fastqc import FastQC
from truncseeker.external.qiime import Qiime2

__all__ = ["ExternalTool", "Cutadapt", "FastQC", "Qiime2"]
