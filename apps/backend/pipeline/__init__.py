"""
Job-posting extraction pipeline.

Turns fetched list and detail pages into link sets, card seeds and fully
resolved job records, tolerating frequent layout changes on the site.
"""

__version__ = "1.0.0"
