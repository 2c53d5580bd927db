import pytest

import reheader_fasta
import update_mag_db


@pytest.fixture(autouse=True)
def _no_root_logging(monkeypatch):
    # keep the scripts from replacing pytest's log handlers
    monkeypatch.setattr(reheader_fasta, "configure_logging", lambda **kw: None)
    monkeypatch.setattr(update_mag_db, "configure_logging", lambda **kw: None)


def test_reheader_cli(write_fasta, tmp_path):
    a = write_fasta("g1.fa", ">ctg1\n" + "A" * 25 + "\n")
    b = write_fasta("g2.fa", ">ctg1\n" + "C" * 50 + "\n")
    out = tmp_path / "merged.fa"
    rc = reheader_fasta.main(["--output", str(out), "--maxlen", "10", str(a), str(b)])
    assert rc == 0
    headers = [ln for ln in out.read_text().splitlines() if ln.startswith(">")]
    assert headers == [">g1|ctg1_part1", ">g1|ctg1_part2", ">g1|ctg1_part3", ">g2|ctg1_part1",
                       ">g2|ctg1_part2", ">g2|ctg1_part3", ">g2|ctg1_part4", ">g2|ctg1_part5"]


def test_reheader_cli_append(write_fasta, tmp_path):
    a = write_fasta("g1.fa", ">x\nAC\n")
    out = tmp_path / "merged.fa"
    assert reheader_fasta.main(["--output", str(out), str(a)]) == 0
    assert reheader_fasta.main(["--output", str(out), "--append", str(a)]) == 0
    assert out.read_text() == ">g1|x\nAC\n>g1|x\nAC\n"


def test_reheader_cli_errors(write_fasta, tmp_path):
    a = write_fasta("g1.fa", ">x\nAC\n")
    out = tmp_path / "merged.fa"
    assert reheader_fasta.main(["--output", str(out), str(tmp_path / "missing.fa")]) == 2
    assert reheader_fasta.main(["--output", str(out), "--maxlen", "0", str(a)]) == 2
    bad = write_fasta("bad.fa", "AC\n>x\nGT\n")
    assert reheader_fasta.main(["--output", str(out), str(bad)]) == 2
    assert reheader_fasta.main(["--output", str(out), "--orphan-lines", "warn", str(bad)]) == 0


def test_update_cli_reference_only(write_fasta, tmp_path):
    base = tmp_path / "pipeline"
    write_fasta("g1.fa", ">ctg1\nACGT\n", directory=base / "drep95" / "dereplicated_genomes")
    rc = update_mag_db.main([
        "--base-dir", str(base), "--db-dir", str(tmp_path / "db"),
        "--ani", "95", "--steps", "reference", "--no-index",
    ])
    assert rc == 0
    assert (base / "ref95" / "ref95.nr.fa").read_text() == ">g1|ctg1\nACGT\n"


def test_update_cli_bad_config(tmp_path):
    rc = update_mag_db.main(["--base-dir", str(tmp_path), "--db-dir", str(tmp_path), "--threads", "0"])
    assert rc == 2


def test_reheader_cli_unwritable_output(write_fasta, tmp_path):
    a = write_fasta("g1.fa", ">x\nAC\n")
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    assert reheader_fasta.main(["--output", str(blocker / "m.fa"), str(a)]) == 2
