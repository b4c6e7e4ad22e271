"""
HTML报告渲染
"""
from liquidity_matrix.report.renderer import ReportRenderer, report_filename

__all__ = ["ReportRenderer", "report_filename"]
