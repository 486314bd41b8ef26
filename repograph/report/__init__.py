"""Report rendering for repository analyses."""

from .writer import MARKDOWN_DOCUMENTS, ReportBuilder, group_flows_by_origin, write_reports

__all__ = ["MARKDOWN_DOCUMENTS", "ReportBuilder", "group_flows_by_origin", "write_reports"]
