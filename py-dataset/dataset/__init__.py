"""
Dataset Layer

Record assembly, labeling, merging and the in-memory dataset session:

- records: Entry creation, appeal labels, instruction-tuning entries
- merge: Case-number deduplication across datasets
- session: Working set of one dataset-building run
"""
