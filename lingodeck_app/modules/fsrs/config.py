# modules/fsrs/config.py

from fsrs_rs_python import DEFAULT_PARAMETERS


class FSRSDefaultConfig:
    FSRS_DESIRED_RETENTION = 0.90
    FSRS_MAX_INTERVAL = 36500
    FSRS_ENABLE_FUZZ = True
    FSRS_FUZZ_THRESHOLD = 3.0
    FSRS_FUZZ_FACTOR = 0.05
    FSRS_GLOBAL_WEIGHTS = list(DEFAULT_PARAMETERS)

    # Step ladder graduation, in days
    GOOD_GRADUATING_INTERVAL = 1
    EASY_GRADUATING_INTERVAL = 4
