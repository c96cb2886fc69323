# This file is part of cloudmeta. See LICENSE file for license information.

__version__ = "0.1.0"
