"""Static metadata describing the assessment engine."""

APP_NAME = "Assessment Engine"
APP_VERSION = "0.1.0"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "Assessment Engine runs timed quiz attempts with mixed question types, "
    "aggregates graded work into weighted course grades, and projects the "
    "scores a learner still needs to reach a target letter grade."
)
