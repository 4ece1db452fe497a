"""Format literals and standard messages used across the ingestion core."""

from __future__ import annotations


class TobiiConstants:
    """Tobii Pro Lab export vocabulary and timing heuristics."""

    TIMESTAMP_COLUMN: str = "Recording timestamp"
    STIMULUS_COLUMN: str = "Presented Stimulus name"
    MEDIA_COLUMN: str = "Recording media name"
    PARTICIPANT_COLUMN: str = "Participant name"
    RECORDING_COLUMN: str = "Recording name"
    CATEGORY_COLUMN: str = "Eye movement type"
    EVENT_COLUMN: str = "Event"
    MOVEMENT_INDEX_COLUMN: str = "Eye movement type index"
    SENSOR_COLUMN: str = "Sensor"
    AOI_HIT_PREFIX: str = "AOI hit ["

    # Only rows from this sensor drive timing and AOI aggregation
    EYE_TRACKER_SENSOR: str = "Eye Tracker"

    # Plausible raw sample interval (µs), roughly 20 Hz to 1111 Hz
    MIN_SAMPLE_INTERVAL_US: float = 900.0
    MAX_SAMPLE_INTERVAL_US: float = 50000.0

    # Gap (in sample intervals) up to which segment edges are moved to the midpoint
    SAMPLE_INTERVAL_TOLERANCE_FACTOR: float = 1.5

    DEFAULT_INTERVAL_MARKERS: str = "IntervalStart;IntervalEnd"


class CategoryNames:
    """Category names emitted by deserializers."""

    FIXATION: str = "Fixation"
    SACCADE: str = "Saccade"
    BLINK: str = "Blink"

    # BeGaze rows with these categories are not eye movements
    BEGAZE_IGNORED = frozenset({"Separator", "-", ""})
    # BeGaze AOI values meaning "no AOI"
    BEGAZE_NO_AOI = frozenset({"-", "White Space", ""})


class ValidationMessages:
    """Standard validation and error messages."""

    COLUMN_NOT_FOUND = "Invalid data file for {deserializer} deserializer. Column {column} not found in header"
    UNKNOWN_FILE_TYPE = "Unknown file type"
    MIXED_FILE_TYPES = "Mixed file types"
    ODD_KEYFRAMES = "Odd number of keyframes in AOI visibility data"
    INVALID_CHUNK_SIZE = "chunk_size_bytes must be > 0"
    INVALID_TIMEOUT = "user_input_timeout_s must be >= 0 or None"
    INVALID_SAMPLE_SIZE = "classification_sample_chars must be > 0"
