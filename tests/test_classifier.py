import pytest

from gaze_ingest.domain.settings import EyeFileType
from gaze_ingest.errors import ClassificationError, MixedFileTypesError

from conftest import TOBII_EVENT_HEADER, TOBII_HEADER, join_rows


BEGAZE_SAMPLE = join_rows(
    [
        ["Trial", "Stimulus", "Participant", "Category", "Event Start Trial Time [ms]",
         "Event End Trial Time [ms]", "AOI Name"],
        ["Trial001", "Map_A", "Participant_1", "Fixation", "0", "100", "Region_1"],
    ]
)

OGAMA_SAMPLE = (
    "# Contents: Similarity Measurements of scanpaths.\n"
    "# Date: 01.01.2020\n"
    "# Subject: all\n"
    "# Trial: 1\n"
    "#\n"
    "# Distances\n"
    "#\n"
    "#\n"
    "Sequence Similarity\tScanpath string\n"
    "Participant_1\tABCD\n"
)


class TestFileTypes:
    def test_begaze(self, classifier):
        settings = classifier.classify(BEGAZE_SAMPLE)
        assert settings.type == EyeFileType.BEGAZE
        assert settings.column_delimiter == "\t"
        assert settings.row_delimiter == "\r\n"
        assert settings.header_row_id == 0

    def test_tobii_without_event(self, classifier):
        settings = classifier.classify(join_rows([TOBII_HEADER]))
        assert settings.type == EyeFileType.TOBII
        assert settings.column_delimiter == "\t"
        assert not settings.requires_user_input

    def test_tobii_with_event(self, classifier):
        settings = classifier.classify(join_rows([TOBII_EVENT_HEADER]))
        assert settings.type == EyeFileType.TOBII_WITH_EVENT
        assert settings.requires_user_input

    def test_gazepoint(self, classifier):
        sample = "MEDIA_ID,MEDIA_NAME,TIME(2021/07/13 09:21:09.801),FPOGS,FPOGD,FPOGID,BKID,BKDUR,AOI,\r\n"
        settings = classifier.classify(sample)
        assert settings.type == EyeFileType.GAZEPOINT
        assert settings.column_delimiter == ","

    def test_ogama_header_row_after_comment_block(self, classifier):
        settings = classifier.classify(OGAMA_SAMPLE)
        assert settings.type == EyeFileType.OGAMA
        assert settings.row_delimiter == "\n"
        assert settings.header_row_id == 8

    def test_varjo(self, classifier):
        settings = classifier.classify("Time;Actor Label\n2022:11:11:15:50:18:30;Region_1\n")
        assert settings.type == EyeFileType.VARJO
        assert settings.column_delimiter == ";"

    def test_csv_segmented_duration(self, classifier):
        sample = "stimulus,participant,timestamp,duration,eyemovementtype,AOI\nSMI Base,Anna,226.2,72,1,\n"
        settings = classifier.classify(sample)
        assert settings.type == EyeFileType.CSV_SEGMENTED_DURATION
        assert settings.column_delimiter == ","

    def test_csv_segmented_with_semicolons(self, classifier):
        sample = "From;To;Participant;Stimulus;AOI\n0;10;P1;Map;Region_1\n"
        settings = classifier.classify(sample)
        assert settings.type == EyeFileType.CSV_SEGMENTED
        assert settings.column_delimiter == ";"

    def test_generic_csv(self, classifier):
        settings = classifier.classify("Time,Participant,Stimulus,AOI\n0,P1,Map,Region_1\n")
        assert settings.type == EyeFileType.CSV
        assert settings.column_delimiter == ","

    def test_leading_bom_is_ignored(self, classifier):
        settings = classifier.classify("\ufeffTime,Participant,Stimulus,AOI\n")
        assert settings.type == EyeFileType.CSV


def test_unknown_sample_raises(classifier):
    with pytest.raises(ClassificationError, match="Unknown file type"):
        classifier.classify("foo,bar\n1,2\n")
    assert classifier.get_type_from_slice("foo,bar\n") is None


def test_begaze_wins_over_generic_csv_columns(classifier):
    # BeGaze files also carry Participant/Stimulus columns
    assert classifier.get_type_from_slice(BEGAZE_SAMPLE) == EyeFileType.BEGAZE


def test_row_delimiter_defaults_to_crlf(classifier):
    assert classifier.get_row_delimiter("no newline here") == "\r\n"
    assert classifier.get_row_delimiter("a\nb\r\n") == "\n"


def test_csv_delimiter_tie_goes_to_semicolon(classifier):
    assert classifier.determine_csv_delimiter("a,b;c") == ";"
    assert classifier.determine_csv_delimiter("a,b,c;d") == ","


def test_classify_many_rejects_mixed_types(classifier):
    samples = [join_rows([TOBII_HEADER]), join_rows([TOBII_EVENT_HEADER])]
    with pytest.raises(MixedFileTypesError) as excinfo:
        classifier.classify_many(samples)
    assert str(excinfo.value) == "Mixed file types"
    assert excinfo.value.types == [EyeFileType.TOBII, EyeFileType.TOBII_WITH_EVENT]


def test_settings_to_dict_uses_camel_case(classifier):
    settings = classifier.classify(join_rows([TOBII_HEADER]))
    assert settings.to_dict() == {
        "type": "tobii",
        "rowDelimiter": "\r\n",
        "columnDelimiter": "\t",
        "userInputSetting": "",
        "headerRowId": 0,
    }
