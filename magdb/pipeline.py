# magdb/pipeline.py
"""
MAG database update workflow.

  1) Archive new MAGs (date-suffixed names).
  2) CheckM2 quality prediction over the archive.
  3) Select high-quality MAGs (completeness / contamination).
  4) Copy them into checkm/combined_filteredfa.
  5) dRep dereplication per ANI level.
  6) GTDB-Tk classification of each dereplicated set.
  7) Fold the CheckM2 run outputs into the persistent checkm directory.
  8) Archive new eukaryotic MAGs.
  9) Merge dereplicated + eukaryotic genomes into ref<ANI>.nr.fa and build GEM indexes.

Every external tool failure is fatal except dRep's, which is tolerated.
"""
from __future__ import annotations

import logging
import os
import shutil
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import ConfigurationError
from .formats import quality_report
from .merge import FastaMerger, MergeStats, ReheaderOptions, DEFAULT_MAXLEN
from .runners.base import ToolResult
from .runners.checkm2 import QUALITY_REPORT, CheckM2Options, run_checkm2
from .runners.drep import DRepOptions, run_drep
from .runners.gem import GemIndexerOptions, run_gem_indexer
from .runners.gtdbtk import GtdbtkOptions, run_gtdbtk

__all__ = [
    "PipelineConfig",
    "STEPS",
    "ingest_new_genomes",
    "run_quality_check",
    "select_high_quality_genomes",
    "copy_high_quality_genomes",
    "dereplicate",
    "classify",
    "consolidate_checkm_outputs",
    "ingest_eukaryotes",
    "collect_reference_inputs",
    "build_reference",
    "run_pipeline",
]

logger = logging.getLogger(__name__)

NAME_LIST_NEW = "newlist_new"
NAME_LIST = "newlist"


@dataclass
class PipelineConfig:
    base_dir: Path
    db_dir: Path

    threads: int = 192
    date_suffix: str = field(default_factory=lambda: time.strftime("%Y%m%d"))
    ani_levels: Tuple[int, ...] = (99, 95)
    extension: str = "fa"

    # quality gate
    min_completeness: float = quality_report.MIN_COMPLETENESS
    max_contamination: float = quality_report.MAX_CONTAMINATION

    # reference merge
    maxlen: int = DEFAULT_MAXLEN
    line_width: int = 60
    label_mode: str = "stem"
    orphan_policy: str = "error"
    check_unique: bool = False

    # external tools
    checkm2_env: Optional[str] = "checkm2"
    gtdb_release: str = "release220"

    def __post_init__(self):
        self.base_dir = Path(self.base_dir)
        self.db_dir = Path(self.db_dir)
        if self.threads < 1:
            raise ConfigurationError(f"threads must be >= 1, got {self.threads!r}")
        if not self.ani_levels:
            raise ConfigurationError("at least one ANI level is required")
        for ani in self.ani_levels:
            if not 0 < ani <= 100:
                raise ConfigurationError(f"ANI level must be in (0, 100], got {ani!r}")
        # validates maxlen / line_width / policies up front
        self.merge_options()

    # ---- layout -----------------------------------------------------------

    @property
    def all_mag_dir(self) -> Path:
        return self.base_dir / "all_MAGs"

    @property
    def new_mag_dir(self) -> Path:
        return self.base_dir / "new_MAGs"

    @property
    def checkm_dir(self) -> Path:
        return self.base_dir / "checkm"

    @property
    def checkm_new_dir(self) -> Path:
        return self.base_dir / "checkm_new"

    @property
    def filtered_dir(self) -> Path:
        return self.checkm_dir / "combined_filteredfa"

    @property
    def euk_dir(self) -> Path:
        return self.base_dir / "Eukaryote"

    @property
    def new_euk_dir(self) -> Path:
        return self.base_dir / "new_Eukaryote"

    @property
    def refmag_dir(self) -> Path:
        return self.db_dir / "refmag"

    @property
    def checkm2_db(self) -> Path:
        return self.db_dir / "CheckM2_database"

    @property
    def gtdbtk_data(self) -> Path:
        return self.db_dir / "gtdb" / self.gtdb_release

    def drep_dir(self, ani: int) -> Path:
        return self.base_dir / f"drep{ani}"

    def dereplicated_dir(self, ani: int) -> Path:
        return self.drep_dir(ani) / "dereplicated_genomes"

    def gtdb_dir(self, ani: int) -> Path:
        return self.base_dir / f"gtdb{ani}"

    def ref_dir(self, ani: int) -> Path:
        return self.base_dir / f"ref{ani}"

    def merged_fasta(self, ani: int) -> Path:
        return self.ref_dir(ani) / f"ref{ani}.nr.fa"

    def ensure_dirs(self) -> None:
        for d in (self.all_mag_dir, self.new_mag_dir, self.checkm_dir, self.euk_dir,
                  self.new_euk_dir, self.refmag_dir):
            d.mkdir(parents=True, exist_ok=True)

    def merge_options(self) -> ReheaderOptions:
        return ReheaderOptions(
            maxlen=self.maxlen,
            line_width=self.line_width,
            orphan_policy=self.orphan_policy,
            check_unique=self.check_unique,
            label_mode=self.label_mode,
        )


def _genomes(d: Path, extension: str) -> List[Path]:
    if not d.is_dir():
        return []
    return sorted(p for p in d.glob(f"*.{extension}") if p.is_file())


# ---------- Step 1 / 8: archive incoming genomes ----------

def _archive_name(dst_dir: Path, stem: str, date_suffix: str, extension: str) -> Path:
    target = dst_dir / f"{stem}_{date_suffix}.{extension}"
    if not target.exists():
        return target
    stamped = f"{stem}_{date_suffix}_{time.strftime('%H%M%S')}"
    target = dst_dir / f"{stamped}.{extension}"
    n = 1
    while target.exists():
        target = dst_dir / f"{stamped}_{n}.{extension}"
        n += 1
    return target


def ingest_new_genomes(src_dir: Path, dst_dir: Path, date_suffix: str, extension: str = "fa") -> List[Path]:
    """Move every *.<extension> from src_dir to dst_dir as <stem>_<date>.<extension>."""
    files = _genomes(src_dir, extension)
    if not files:
        logger.info("No new genomes in %s", src_dir)
        return []
    logger.info("Found %d new genome(s) in %s", len(files), src_dir)
    dst_dir.mkdir(parents=True, exist_ok=True)
    moved: List[Path] = []
    for f in files:
        target = _archive_name(dst_dir, f.stem, date_suffix, extension)
        shutil.move(str(f), str(target))
        logger.info("Moved: %s -> %s", f, target)
        moved.append(target)
    return moved


def ingest_eukaryotes(cfg: PipelineConfig) -> List[Path]:
    return ingest_new_genomes(cfg.new_euk_dir, cfg.euk_dir, cfg.date_suffix, cfg.extension)


# ---------- Step 2: CheckM2 ----------

def run_quality_check(cfg: PipelineConfig) -> Optional[ToolResult]:
    if not _genomes(cfg.all_mag_dir, cfg.extension):
        logger.warning("No genomes in %s; skipping CheckM2.", cfg.all_mag_dir)
        return None
    opts = CheckM2Options(
        input_dir=str(cfg.all_mag_dir),
        output_dir=str(cfg.checkm_new_dir),
        threads=cfg.threads,
        extension=cfg.extension,
        database_dir=str(cfg.checkm2_db),
        conda_env=cfg.checkm2_env,
    )
    return run_checkm2(opts)


# ---------- Step 3: quality gate ----------

def select_high_quality_genomes(cfg: PipelineConfig) -> List[str]:
    report = cfg.checkm_new_dir / QUALITY_REPORT
    name_list = cfg.checkm_new_dir / NAME_LIST_NEW
    name_list.parent.mkdir(parents=True, exist_ok=True)
    if not report.is_file():
        logger.warning("%s not found; writing an empty high-quality list.", report)
        quality_report.write_name_list([], name_list)
        return []
    names = list(quality_report.select_high_quality(
        quality_report.decode(report),
        min_completeness=cfg.min_completeness,
        max_contamination=cfg.max_contamination,
    ))
    quality_report.write_name_list(names, name_list)
    logger.info("High-quality MAGs: %d", len(names))
    return names


# ---------- Step 4: collect high-quality genomes ----------

def copy_high_quality_genomes(cfg: PipelineConfig, names: Iterable[str]) -> List[Path]:
    cfg.filtered_dir.mkdir(parents=True, exist_ok=True)
    copied: List[Path] = []
    for name in names:
        src = cfg.all_mag_dir / f"{name}.{cfg.extension}"
        dst = cfg.filtered_dir / src.name
        if not src.is_file():
            logger.warning("%s not found in %s", src.name, cfg.all_mag_dir)
            continue
        shutil.copyfile(src, dst)
        copied.append(dst)
    if not copied:
        logger.info("High-quality list is empty; nothing copied.")
    return copied


# ---------- Step 5: dRep ----------

def dereplicate(cfg: PipelineConfig) -> Dict[int, Optional[ToolResult]]:
    results: Dict[int, Optional[ToolResult]] = {}
    genomes = _genomes(cfg.filtered_dir, cfg.extension)
    for ani in cfg.ani_levels:
        if not genomes:
            logger.warning("No filtered genomes; skipping dRep %d.", ani)
            results[ani] = None
            continue
        # a list file avoids "Argument list too long"
        genome_list = cfg.filtered_dir / f"genome_list_{ani}.txt"
        genome_list.write_text("".join(f"{g}\n" for g in genomes), encoding="utf-8")
        results[ani] = run_drep(DRepOptions(
            output_dir=str(cfg.drep_dir(ani)),
            genome_list=str(genome_list),
            ani=ani,
            threads=cfg.threads,
        ))
    return results


# ---------- Step 6: GTDB-Tk ----------

def classify(cfg: PipelineConfig) -> Dict[int, Optional[ToolResult]]:
    results: Dict[int, Optional[ToolResult]] = {}
    for ani in cfg.ani_levels:
        genome_dir = cfg.dereplicated_dir(ani)
        if not _genomes(genome_dir, cfg.extension):
            logger.warning("No genomes in %s; skipping GTDB-Tk %d.", genome_dir, ani)
            results[ani] = None
            continue
        results[ani] = run_gtdbtk(GtdbtkOptions(
            genome_dir=str(genome_dir),
            output_dir=str(cfg.gtdb_dir(ani)),
            cpus=cfg.threads,
            extension=cfg.extension,
            data_path=str(cfg.gtdbtk_data),
        ))
    return results


# ---------- Step 7: persist CheckM2 outputs ----------

def _suffixed(path: Path, suffix: str) -> Path:
    # a.b.tsv -> a.b_new.tsv ; noext -> noext_new
    if path.suffix:
        return path.with_name(f"{path.stem}{suffix}{path.suffix}")
    return path.with_name(path.name + suffix)


def consolidate_checkm_outputs(cfg: PipelineConfig) -> None:
    new = cfg.checkm_new_dir
    keep = cfg.checkm_dir
    (keep / "diamond_output").mkdir(parents=True, exist_ok=True)
    (keep / "protein_files").mkdir(parents=True, exist_ok=True)

    src = new / "diamond_output"
    if src.is_dir():
        for f in sorted(src.iterdir()):
            dst = keep / "diamond_output" / f.name
            if dst.exists():
                dst = _suffixed(dst, "_new")
            shutil.move(str(f), str(dst))

    src = new / "protein_files"
    if src.is_dir():
        for f in sorted(src.iterdir()):
            dst = keep / "protein_files" / f.name
            if dst.is_dir():
                shutil.rmtree(dst)
            shutil.move(str(f), str(dst))

    if (new / QUALITY_REPORT).is_file():
        shutil.copyfile(new / QUALITY_REPORT, keep / QUALITY_REPORT)
    if (new / NAME_LIST_NEW).is_file():
        shutil.copyfile(new / NAME_LIST_NEW, keep / NAME_LIST)

    shutil.rmtree(new, ignore_errors=True)
    logger.info("CheckM2 outputs merged into %s", keep)


# ---------- Step 9: reference merge + GEM ----------

def collect_reference_inputs(cfg: PipelineConfig, ani: int) -> List[Path]:
    """
    Dereplicated genomes then eukaryotic genomes; a eukaryotic file replaces a
    dereplicated one of the same name. Ordered by file name.
    """
    by_name: Dict[str, Path] = {}
    derep = _genomes(cfg.dereplicated_dir(ani), cfg.extension)
    if not derep:
        logger.warning("No dereplicated genomes for ANI %d; building from eukaryotic genomes only.", ani)
    for p in derep:
        by_name[p.name] = p
    for p in _genomes(cfg.euk_dir, cfg.extension):
        by_name[p.name] = p
    return [by_name[k] for k in sorted(by_name)]


def build_reference(cfg: PipelineConfig, ani: int, *, index: bool = True) -> MergeStats:
    """
    Merge the reference inputs for `ani` into ref<ANI>.nr.fa (written to a
    temporary file and renamed on success) and optionally build the GEM index.
    """
    inputs = collect_reference_inputs(cfg, ani)
    merged = cfg.merged_fasta(ani)
    merged.parent.mkdir(parents=True, exist_ok=True)
    tmp = merged.with_suffix(merged.suffix + ".tmp")
    for p in inputs:
        logger.info("Merging reference: %s", p.name)
    try:
        stats = FastaMerger(cfg.merge_options()).merge(inputs, tmp, truncate=True)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    os.replace(tmp, merged)

    if index:
        opts = GemIndexerOptions(
            input_fasta=str(merged),
            output_prefix=str(cfg.refmag_dir / f"ref{ani}"),
            threads=cfg.threads,
        )
        run_gem_indexer(opts)
        logger.info("[DONE] GEM %d%% index: %s", ani, opts.index_path)
    return stats


# ---------- Driver ----------

STEPS: Sequence[str] = (
    "ingest", "checkm2", "select", "copy", "drep", "gtdbtk", "consolidate", "eukaryotes", "reference",
)


def run_pipeline(cfg: PipelineConfig, steps: Optional[Iterable[str]] = None, *, index: bool = True) -> None:
    wanted = list(STEPS) if steps is None else list(steps)
    unknown = [s for s in wanted if s not in STEPS]
    if unknown:
        raise ConfigurationError(f"unknown step(s): {', '.join(unknown)}; choose from {', '.join(STEPS)}")

    cfg.ensure_dirs()
    names: Optional[List[str]] = None

    for n, step in enumerate(STEPS, start=1):
        if step not in wanted:
            continue
        logger.info("Step %d. %s", n, step)
        if step == "ingest":
            ingest_new_genomes(cfg.new_mag_dir, cfg.all_mag_dir, cfg.date_suffix, cfg.extension)
        elif step == "checkm2":
            run_quality_check(cfg)
        elif step == "select":
            names = select_high_quality_genomes(cfg)
        elif step == "copy":
            if names is None:
                names = _read_name_list(cfg.checkm_new_dir / NAME_LIST_NEW)
            copy_high_quality_genomes(cfg, names)
        elif step == "drep":
            dereplicate(cfg)
        elif step == "gtdbtk":
            classify(cfg)
        elif step == "consolidate":
            consolidate_checkm_outputs(cfg)
        elif step == "eukaryotes":
            ingest_eukaryotes(cfg)
        elif step == "reference":
            for ani in sorted(cfg.ani_levels):
                build_reference(cfg, ani, index=index)

    logger.info("Pipeline finished.")


def _read_name_list(path: Path) -> List[str]:
    if not path.is_file():
        return []
    return [ln.strip() for ln in path.read_text(encoding="utf-8").splitlines() if ln.strip()]
