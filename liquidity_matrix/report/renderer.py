"""
报告渲染器

使用 Jinja2 模板将 RunReport 文档渲染为单个 HTML 文件，
文件名包含本次运行的时间戳。
"""
import webbrowser
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

from jinja2 import Environment, PackageLoader, TemplateError, select_autoescape

from liquidity_matrix.core.models import RunReport
from liquidity_matrix.utils.exceptions import ReportWriteError
from liquidity_matrix.utils.logger import get_logger

logger = get_logger(__name__)

TEMPLATE_NAME = "liquidity_matrix.html"
FILENAME_PREFIX = "liquidity_matrix_all_addresses_"


def report_filename(generated_at: datetime) -> str:
    """liquidity_matrix_all_addresses_<YYYY-MM-DD>_<HH-MM-SS>.html"""
    return f"{FILENAME_PREFIX}{generated_at.strftime('%Y-%m-%d_%H-%M-%S')}.html"


class ReportRenderer:
    """HTML报告渲染器"""

    def __init__(self, template_name: str = TEMPLATE_NAME):
        self.template_name = template_name
        self._env: Optional[Environment] = None

    @property
    def env(self) -> Environment:
        """延迟创建 Jinja2 环境"""
        if self._env is None:
            self._env = Environment(
                loader=PackageLoader("liquidity_matrix", "templates"),
                autoescape=select_autoescape(["html"]),
                trim_blocks=True,
                lstrip_blocks=True,
            )
        return self._env

    def render(self, document: Dict[str, Any]) -> str:
        """
        渲染结构化文档

        Args:
            document: RunReport.to_document() 的结果

        Returns:
            HTML 字符串
        """
        template = self.env.get_template(self.template_name)
        return template.render(**document)

    def write(
        self,
        report: RunReport,
        output_dir: Union[str, Path] = ".",
        open_in_browser: bool = False,
    ) -> Path:
        """
        渲染并写入报告文件

        Args:
            report: 本次运行的报告
            output_dir: 输出目录（不存在时自动创建）
            open_in_browser: 写入后是否用默认浏览器打开

        Returns:
            报告文件路径

        Raises:
            ReportWriteError: 模板渲染或文件写入失败
        """
        path = Path(output_dir) / report_filename(report.generated_at)

        try:
            html = self.render(report.to_document())
        except TemplateError as e:
            raise ReportWriteError(str(path), f"Template rendering failed: {e}")

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(html, encoding="utf-8")
        except OSError as e:
            raise ReportWriteError(str(path), str(e))

        logger.info(
            "report_written",
            path=str(path),
            accounts=len(report.accounts),
            size_bytes=len(html.encode("utf-8")),
        )

        if open_in_browser:
            opened = webbrowser.open(path.resolve().as_uri())
            if not opened:
                logger.warning("report_open_failed", path=str(path))

        return path
