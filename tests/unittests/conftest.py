# This file is part of cloudmeta. See LICENSE file for license information.

import pytest

from cloudmeta import metadata


@pytest.fixture(autouse=True)
def reset_metadata_cache():
    """Every test starts and ends with an empty process-wide cache."""
    metadata.reset_for_testing()
    yield
    metadata.reset_for_testing()
