import io
import pytest

from magdb.errors import MalformedReportError
from magdb.formats.quality_report import decode, select_high_quality, write_name_list

REPORT = (
    "Name\tCompleteness\tContamination\tCompleteness_Model_Used\tGenome_Size\n"
    "binA\t95.5\t1.2\tNeural Network\t2000000\n"
    "binB\t79.99\t0.5\tNeural Network\t1500000\n"
    "binC\t80.0\t10.0\tGradient Boost\t3000000\n"
    "binD\t99.0\t10.01\tNeural Network\t2500000\n"
    "\n"
)


def test_decode_columns_by_name():
    recs = list(decode(REPORT))
    assert [r.name for r in recs] == ["binA", "binB", "binC", "binD"]
    assert recs[0].completeness == 95.5 and recs[0].contamination == 1.2
    assert recs[0].extra == {"Completeness_Model_Used": "Neural Network", "Genome_Size": "2000000"}


def test_reordered_columns():
    txt = "Contamination\tName\tCompleteness\n2.0\tbinZ\t90\n"
    r = next(decode(txt))
    assert (r.name, r.completeness, r.contamination) == ("binZ", 90.0, 2.0)


def test_select_bounds_are_inclusive():
    assert list(select_high_quality(decode(REPORT))) == ["binA", "binC"]


def test_select_custom_thresholds():
    names = list(select_high_quality(decode(REPORT), min_completeness=50, max_contamination=20))
    assert names == ["binA", "binB", "binC", "binD"]


def test_decode_from_path_and_filelike(tmp_path):
    p = tmp_path / "quality_report.tsv"
    p.write_text(REPORT)
    assert len(list(decode(str(p)))) == 4
    assert len(list(decode(p))) == 4
    assert len(list(decode(io.StringIO(REPORT)))) == 4


def test_missing_column():
    with pytest.raises(MalformedReportError, match="Contamination"):
        list(decode("Name\tCompleteness\nbinA\t90\n"))


def test_non_numeric_value():
    with pytest.raises(MalformedReportError):
        list(decode("Name\tCompleteness\tContamination\nbinA\tNA\t1\n"))


def test_write_name_list(tmp_path):
    out = tmp_path / "newlist_new"
    assert write_name_list(["binA", "binC"], out) == 2
    assert out.read_text() == "binA\nbinC\n"
