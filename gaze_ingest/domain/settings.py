"""Classification result describing how to read one file."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Union


class EyeFileType:
    """Known file type identifiers."""

    BEGAZE = "begaze"
    TOBII = "tobii"
    TOBII_WITH_EVENT = "tobii-with-event"
    GAZEPOINT = "gazepoint"
    OGAMA = "ogama"
    VARJO = "varjo"
    CSV = "csv"
    CSV_SEGMENTED = "csv-segmented"
    CSV_SEGMENTED_DURATION = "csv-segmented-duration"
    PUPIL_CLOUD_ZIP = "pupil-cloud-zip"


@dataclass(frozen=True)
class EyeSettings:
    type: str
    row_delimiter: str
    column_delimiter: str
    user_input_setting: str = ""
    header_row_id: int = 0

    @property
    def requires_user_input(self) -> bool:
        return self.type == EyeFileType.TOBII_WITH_EVENT

    def to_dict(self) -> Dict[str, Union[str, int]]:
        return {
            "type": self.type,
            "rowDelimiter": self.row_delimiter,
            "columnDelimiter": self.column_delimiter,
            "userInputSetting": self.user_input_setting,
            "headerRowId": self.header_row_id,
        }
