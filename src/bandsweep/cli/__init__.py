# Copyright (c) Syntropy Systems
"""bandsweep command line interface."""
