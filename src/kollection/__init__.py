from kollection.pipe.core import Operation, Pipeline, stage
from kollection.sequence import (
    Sequence, Partition, sequence_of, empty_sequence, as_sequence,
    NoSuchElementError, AmbiguousElementError, ElementIndexError,
)
from kollection.util.config import configure_logger, get_config, get_settings, reset_config

import logging

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())
