import pandas as pd
import pytest

from c2c.etl.errors import MissingSourceError, SourceFormatError
from c2c.projects.ipeds.institutions import (
    CALIFORNIA_COMMUNITY_COLLEGES,
    CALIFORNIA_STATE_UNIVERSITY,
    UNIVERSITY_OF_CALIFORNIA,
    InstitutionJoiner,
    classify_institutions,
    load_institution_directory,
    load_roster,
)


@pytest.fixture(scope="module")
def roster():
    return load_roster()


@pytest.mark.parametrize("name, system", [
    ("University of California-Berkeley", UNIVERSITY_OF_CALIFORNIA),
    ("University of California-Hastings College of Law", UNIVERSITY_OF_CALIFORNIA),
    ("California State University-Fresno", CALIFORNIA_STATE_UNIVERSITY),
    ("San Diego State University", CALIFORNIA_STATE_UNIVERSITY),
    ("California State Polytechnic University-Pomona", CALIFORNIA_STATE_UNIVERSITY),
    ("Fresno City College", CALIFORNIA_COMMUNITY_COLLEGES),
    ("Santa Monica College", CALIFORNIA_COMMUNITY_COLLEGES),
    ("Stanford University", None),
    ("Fresno City College Extension", None),
])
def test_classify(name, system, roster):
    assert classify_institutions(pd.Series([name]), roster).tolist() == [system]


def test_classify_missing_name(roster):
    assert classify_institutions(pd.Series([None]), roster).tolist() == [None]


def test_packaged_roster(roster):
    assert "De Anza College" in roster
    assert "Stanford University" not in roster
    assert len(roster) > 100


def test_custom_roster(tmp_path):
    path = tmp_path / "roster.yaml"
    path.write_text("version: 1\nnames:\n  - Example College\n  - ' Padded College '\n")

    assert load_roster(path) == frozenset({"Example College", "Padded College"})


def test_roster_not_found(tmp_path):
    with pytest.raises(MissingSourceError):
        load_roster(tmp_path / "missing.yaml")


@pytest.mark.parametrize("content", [
    "names: []\n",
    "- just\n- a list\n",
    "names: [unclosed\n",
])
def test_invalid_roster(tmp_path, content):
    path = tmp_path / "roster.yaml"
    path.write_text(content)

    with pytest.raises(SourceFormatError):
        load_roster(path)


def test_load_directory(directory_file):
    directory = load_institution_directory(directory_file)

    assert list(directory.columns) == [
        "UNITID", "Institution name", "Institution alias", "Street Address",
        "City", "State Abbreviation", "ZIP", "FIPS",
    ]
    assert len(directory) == 5
    assert directory.loc[0, "Institution name"] == "University of California-Berkeley"


def test_load_directory_drops_duplicate_ids(raw_dir, write_csv):
    path = write_csv(raw_dir / "hd2022.csv",
                     ["unitid", "instnm", "ialias", "addr", "city", "stabbr", "zip", "fips"], [
                         ["110635", "University of California-Berkeley", "", "", "Berkeley", "CA", "", "6"],
                         ["110635", "Duplicate", "", "", "", "CA", "", "6"],
                     ])

    directory = load_institution_directory(path)

    assert directory["Institution name"].tolist() == ["University of California-Berkeley"]


def test_load_directory_missing(tmp_path):
    with pytest.raises(MissingSourceError):
        load_institution_directory(tmp_path / "hd2022.csv")


def test_load_directory_missing_columns(raw_dir, write_csv):
    path = write_csv(raw_dir / "hd2022.csv", ["UNITID", "INSTNM"], [["1", "Somewhere"]])

    with pytest.raises(SourceFormatError):
        load_institution_directory(path)


def test_joiner_keeps_public_in_state_rows(directory_file, roster):
    counts = pd.DataFrame({
        "Year": ["2022"] * 6,
        "UNITID": ["110635", "110556", " 114716", "243744", "104151", "999999"],
        "Grand total": ["45000", "25000", "30000", "17000", "80000", "10"],
    })

    joiner = InstitutionJoiner(load_institution_directory(directory_file), roster, "CA")
    result = joiner.transform(counts)

    assert result["UNITID"].tolist() == ["110635", "110556", "114716"]
    assert result["System"].tolist() == [
        UNIVERSITY_OF_CALIFORNIA,
        CALIFORNIA_STATE_UNIVERSITY,
        CALIFORNIA_COMMUNITY_COLLEGES,
    ]
    assert result.columns[-1] == "System"
    assert set(result["State Abbreviation"]) == {"CA"}
    # private, out of state and unknown institutions
    assert joiner.stats["rows_dropped"] == 3


def test_joiner_target_state(directory_file, roster):
    counts = pd.DataFrame({"UNITID": ["110635", "104151"]})

    result = InstitutionJoiner(load_institution_directory(directory_file), roster, "NV").transform(counts)

    assert result.empty


def test_classify_leaves_excluded_rows_empty(roster):
    names = pd.Series(["Stanford University", None, "Fresno City College"], index=[10, 11, 12])

    result = classify_institutions(names, roster)

    assert result.index.tolist() == [10, 11, 12]
    assert result[10] is None
    assert result[11] is None
    assert result[12] == CALIFORNIA_COMMUNITY_COLLEGES
