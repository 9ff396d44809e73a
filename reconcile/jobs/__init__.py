"""Chunked write jobs against the document store."""

from reconcile.jobs.batch import BatchMutator, BatchReport, apply_in_chunks

__all__ = ["BatchMutator", "BatchReport", "apply_in_chunks"]
