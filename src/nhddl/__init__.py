"""nhddl: launch configuration and history bookkeeping for Neutrino titles.

Parses per-title and global argument files, merges them into the argument
vector handed to the Neutrino loader, and keeps the console's launch history
file on both memory cards up to date without hammering the same bits.
"""

__version__ = "0.1.0"
