import pytest

from c2c.etl.errors import MissingSourceError
from c2c.projects.cde.enrollment import CumulativeEnrollmentPipeline, EnrollmentPipeline

CENSUS_HEADER = ["CDS_CODE", "COUNTY", "DISTRICT", "SCHOOL", "ETHNIC", "GENDER", "KDGN", "ENR_TOTAL"]

CUMULATIVE_HEADER = [
    "AcademicYear", "AggregateLevel", "CountyCode", "DistrictCode", "SchoolCode",
    "CountyName", "DistrictName", "SchoolName", "Charter", "ReportingCategory",
    "CumulativeEnrollment",
]


@pytest.fixture
def census_files(raw_dir, write_tab):
    write_tab(raw_dir / "CDE Enrollment 2018-2019.txt", CENSUS_HEADER, [
        ["01611920130229", "Alameda", "Oakland Unified", "Oakland High", "5", "F", "0", "412"],
        ["01611920130229", "Alameda", "Oakland Unified", "Oakland High", "7", "M", "0", "98"],
    ])
    write_tab(raw_dir / "CDE Enrollment 2019-2020.txt", CENSUS_HEADER, [
        ["01611920130229", "Alameda", "Oakland Unified", "Oakland High", "2", "X", "0", "3"],
        ["01611920130229", "Alameda", "Oakland Unified", "St. Mary's Academy", "8", "Z", "0", "1"],
    ])
    # cumulative files live beside census files and must not be picked up
    write_tab(raw_dir / "CDE Cumulative Enrollment 2019-2020.txt", CUMULATIVE_HEADER, [
        ["2019-20", "T", "00", "", "", "State", "", "", "All", "TA", "6500000"],
    ])
    return raw_dir


class TestCensusEnrollment:

    def test_recodes_and_adds_year(self, census_files, config, read_clean):
        stats = EnrollmentPipeline(config).run()

        output = read_clean(config.clean_dir / "CDE_Enrollment.csv")
        assert stats["files"] == 2
        assert list(output.columns) == ["Year", *CENSUS_HEADER]
        assert output["Year"].tolist() == ["2018-2019", "2018-2019", "2019-2020", "2019-2020"]
        assert output["ETHNIC"].tolist() == ["Hispanic/Latino", "White", "Asian", "Unknown"]
        assert output["GENDER"].tolist() == ["Female", "Male", "Non-Binary", "Missing"]

    def test_counts_pass_through(self, census_files, config, read_clean):
        EnrollmentPipeline(config).run()

        output = read_clean(config.clean_dir / "CDE_Enrollment.csv")
        assert output["ENR_TOTAL"].tolist() == ["412", "98", "3", "1"]
        assert output["CDS_CODE"].iloc[0] == "01611920130229"

    def test_missing_raw_folder(self, tmp_path, config):
        config.raw_dir = tmp_path / "missing"

        with pytest.raises(MissingSourceError):
            EnrollmentPipeline(config).run()


class TestCumulativeEnrollment:

    def test_recodes_level_and_category(self, census_files, config, read_clean, write_tab):
        write_tab(census_files / "CDE Cumulative Enrollment 2020-2021.txt", CUMULATIVE_HEADER, [
            ["2020-21", "C", "01", "", "", "Alameda", "", "", "All", "GZ", "15"],
            ["2020-21", "S", "01", "61192", "0130229", "Alameda", "Oakland Unified", "Oakland High", "No", "GX", "*"],
        ])

        stats = CumulativeEnrollmentPipeline(config).run()

        output = read_clean(config.clean_dir / "CDE_Cumulative_Enrollment.csv")
        assert stats["files"] == 2
        assert list(output.columns) == CUMULATIVE_HEADER
        assert output["AcademicYear"].tolist() == ["2019-20", "2020-21", "2020-21"]
        assert output["AggregateLevel"].tolist() == ["State", "County", "School"]
        assert output["ReportingCategory"].tolist() == ["Total", "Missing", "Non-binary"]
        # suppressed counts are published as-is
        assert output["CumulativeEnrollment"].tolist() == ["6500000", "15", "*"]
