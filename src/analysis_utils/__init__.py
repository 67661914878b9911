"""Classification, statistics, agreement and reporting over scored papers.

The modules here consume normalized :mod:`dataset` records and the scores
produced by :mod:`scoring`, and assemble the per-component export artifact.
Nothing in this package touches the file system.
"""
