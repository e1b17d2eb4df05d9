"""
taxquote: estimate the preparation complexity of a tax return PDF.

The text of each page is scanned for a fixed catalog of form and schedule
markers; the detected signals are folded into a summary with a complexity tier.
"""

__version__ = "0.1.0"
