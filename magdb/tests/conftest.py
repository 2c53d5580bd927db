from pathlib import Path
import pytest

# Fixture that writes FASTA text into the test's tmp_path. E.g.
#
#   def test_something(write_fasta):
#       fa = write_fasta("g1.fa", ">ctg1\nACGT\n")
#
@pytest.fixture
def write_fasta(tmp_path):
    def _write(name: str, text: str, directory: Path = None) -> Path:
        d = directory or tmp_path
        d.mkdir(parents=True, exist_ok=True)
        p = d / name
        p.write_bytes(text.encode("utf-8"))
        return p
    return _write


def read_records(path):
    """Parse merged output back into [(header, [lines])] for assertions."""
    out = []
    for ln in Path(path).read_text(encoding="utf-8").splitlines():
        if ln.startswith(">"):
            out.append((ln[1:], []))
        else:
            out[-1][1].append(ln)
    return out


@pytest.fixture
def parse_fasta():
    return read_records
