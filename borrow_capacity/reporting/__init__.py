"""Report generation modules"""

from .charts import ChartGenerator
from .markdown_report import MarkdownReportGenerator
from .severity import scenario_severity

__all__ = ["MarkdownReportGenerator", "ChartGenerator", "scenario_severity"]
