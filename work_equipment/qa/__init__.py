"""Draft quality-assurance summaries."""

from work_equipment.qa.metrics import compute_draft_summary

__all__ = ["compute_draft_summary"]
