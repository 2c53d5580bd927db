import pytest

from magdb.errors import ConfigurationError, MalformedFastaError
from magdb.pipeline import (
    PipelineConfig, build_reference, collect_reference_inputs, consolidate_checkm_outputs,
    copy_high_quality_genomes, dereplicate, ingest_new_genomes, run_pipeline,
    select_high_quality_genomes,
)


@pytest.fixture
def cfg(tmp_path):
    c = PipelineConfig(base_dir=tmp_path / "pipeline", db_dir=tmp_path / "db",
                       threads=2, date_suffix="20251018")
    c.ensure_dirs()
    return c


def test_config_validation(tmp_path):
    with pytest.raises(ConfigurationError):
        PipelineConfig(base_dir=tmp_path, db_dir=tmp_path, threads=0)
    with pytest.raises(ConfigurationError):
        PipelineConfig(base_dir=tmp_path, db_dir=tmp_path, ani_levels=(101,))
    with pytest.raises(ConfigurationError):
        PipelineConfig(base_dir=tmp_path, db_dir=tmp_path, maxlen=0)


def test_layout(cfg, tmp_path):
    assert cfg.merged_fasta(95) == tmp_path / "pipeline" / "ref95" / "ref95.nr.fa"
    assert cfg.dereplicated_dir(99) == tmp_path / "pipeline" / "drep99" / "dereplicated_genomes"
    assert cfg.gtdbtk_data == tmp_path / "db" / "gtdb" / "release220"
    assert cfg.refmag_dir.is_dir()


def test_ingest_renames_with_date(cfg, write_fasta):
    write_fasta("binA.fa", ">c\nAC\n", directory=cfg.new_mag_dir)
    write_fasta("notes.txt", "x", directory=cfg.new_mag_dir)
    moved = ingest_new_genomes(cfg.new_mag_dir, cfg.all_mag_dir, cfg.date_suffix)
    assert [p.name for p in moved] == ["binA_20251018.fa"]
    assert not (cfg.new_mag_dir / "binA.fa").exists()
    assert (cfg.new_mag_dir / "notes.txt").exists()


def test_ingest_collision_gets_time_suffix(cfg, write_fasta):
    write_fasta("binA_20251018.fa", ">old\nAC\n", directory=cfg.all_mag_dir)
    write_fasta("binA.fa", ">new\nGT\n", directory=cfg.new_mag_dir)
    (moved,) = ingest_new_genomes(cfg.new_mag_dir, cfg.all_mag_dir, cfg.date_suffix)
    assert moved.name.startswith("binA_20251018_") and moved.name != "binA_20251018.fa"
    assert (cfg.all_mag_dir / "binA_20251018.fa").read_text() == ">old\nAC\n"


def test_ingest_empty(cfg):
    assert ingest_new_genomes(cfg.new_mag_dir, cfg.all_mag_dir, cfg.date_suffix) == []


def test_select_and_copy(cfg, write_fasta):
    cfg.checkm_new_dir.mkdir(parents=True)
    (cfg.checkm_new_dir / "quality_report.tsv").write_text(
        "Name\tCompleteness\tContamination\n"
        "good\t90\t1\n"
        "bad\t50\t1\n"
        "gone\t99\t0\n"
    )
    write_fasta("good.fa", ">c\nAC\n", directory=cfg.all_mag_dir)
    names = select_high_quality_genomes(cfg)
    assert names == ["good", "gone"]
    assert (cfg.checkm_new_dir / "newlist_new").read_text() == "good\ngone\n"
    copied = copy_high_quality_genomes(cfg, names)
    assert [p.name for p in copied] == ["good.fa"]


def test_select_without_report(cfg):
    assert select_high_quality_genomes(cfg) == []
    assert (cfg.checkm_new_dir / "newlist_new").read_text() == ""


def test_dereplicate_skips_when_empty(cfg):
    assert dereplicate(cfg) == {99: None, 95: None}


def test_consolidate_checkm_outputs(cfg):
    new = cfg.checkm_new_dir
    (new / "diamond_output").mkdir(parents=True)
    (new / "protein_files").mkdir()
    (new / "diamond_output" / "DIAMOND_RESULTS.tsv").write_text("new")
    (new / "protein_files" / "binA.faa").write_text(">p\nM\n")
    (new / "quality_report.tsv").write_text("Name\tCompleteness\tContamination\n")
    (new / "newlist_new").write_text("binA\n")
    keep = cfg.checkm_dir
    (keep / "diamond_output").mkdir(parents=True)
    (keep / "diamond_output" / "DIAMOND_RESULTS.tsv").write_text("old")

    consolidate_checkm_outputs(cfg)

    assert (keep / "diamond_output" / "DIAMOND_RESULTS.tsv").read_text() == "old"
    assert (keep / "diamond_output" / "DIAMOND_RESULTS_new.tsv").read_text() == "new"
    assert (keep / "protein_files" / "binA.faa").is_file()
    assert (keep / "newlist").read_text() == "binA\n"
    assert (keep / "quality_report.tsv").is_file()
    assert not new.exists()


def test_reference_inputs_order_and_override(cfg, write_fasta):
    d = cfg.dereplicated_dir(95)
    write_fasta("b.fa", ">x\nAC\n", directory=d)
    write_fasta("a.fa", ">x\nAC\n", directory=d)
    write_fasta("a.fa", ">euk\nGG\n", directory=cfg.euk_dir)
    write_fasta("c.fa", ">y\nTT\n", directory=cfg.euk_dir)
    inputs = collect_reference_inputs(cfg, 95)
    assert [p.name for p in inputs] == ["a.fa", "b.fa", "c.fa"]
    assert inputs[0].parent == cfg.euk_dir


def test_build_reference_without_index(tmp_path, write_fasta):
    cfg = PipelineConfig(base_dir=tmp_path / "p", db_dir=tmp_path / "db", maxlen=10, date_suffix="x")
    write_fasta("g1.fa", ">ctg1\n" + "A" * 25 + "\n", directory=cfg.dereplicated_dir(95))
    write_fasta("euk1.fa", ">chr1\nGGGG\n", directory=cfg.euk_dir)
    stats = build_reference(cfg, 95, index=False)
    merged = cfg.merged_fasta(95)
    assert merged.read_text() == (
        ">euk1|chr1\nGGGG\n"
        ">g1|ctg1_part1\nAAAAAAAAAA\n"
        ">g1|ctg1_part2\nAAAAAAAAAA\n"
        ">g1|ctg1_part3\nAAAAA\n"
    )
    assert stats.units == 4
    assert not merged.with_suffix(".fa.tmp").exists()


def test_build_reference_failure_keeps_previous(tmp_path, write_fasta):
    cfg = PipelineConfig(base_dir=tmp_path / "p", db_dir=tmp_path / "db", date_suffix="x")
    merged = cfg.merged_fasta(99)
    merged.parent.mkdir(parents=True)
    merged.write_text(">previous|x\nAC\n")
    write_fasta("bad.fa", "ACGT\n>x\nAC\n", directory=cfg.dereplicated_dir(99))
    with pytest.raises(MalformedFastaError):
        build_reference(cfg, 99, index=False)
    assert merged.read_text() == ">previous|x\nAC\n"
    assert not merged.with_suffix(".fa.tmp").exists()


def test_run_pipeline_local_steps(cfg, write_fasta):
    write_fasta("binA.fa", ">c\nAC\n", directory=cfg.new_mag_dir)
    write_fasta("fungus.fa", ">chr\nGT\n", directory=cfg.new_euk_dir)
    run_pipeline(cfg, steps=["ingest", "eukaryotes", "reference"], index=False)
    assert (cfg.all_mag_dir / "binA_20251018.fa").is_file()
    for ani in (95, 99):
        assert cfg.merged_fasta(ani).read_text() == ">fungus_20251018|chr\nGT\n"


def test_run_pipeline_unknown_step(cfg):
    with pytest.raises(ConfigurationError):
        run_pipeline(cfg, steps=["index"])
