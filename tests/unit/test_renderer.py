"""
ReportRenderer 单元测试
"""
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest

from liquidity_matrix.core.models import LockedInterval, RawBalanceLock
from liquidity_matrix.report import ReportRenderer, report_filename
from liquidity_matrix.tools.liquidity import LadderCalculator, ReportComposer
from liquidity_matrix.utils.exceptions import ReportWriteError


@pytest.fixture
def run_report(clock, alice):
    composer = ReportComposer(generated_at=clock.now, finalized_block=clock.finalized_block)
    ladder = LadderCalculator.build_ladder(
        [
            LockedInterval(
                start_at=clock.now,
                end_at=clock.now + timedelta(days=224),
                amount=Decimal(30),
            )
        ],
        clock.now,
    )
    composer.add_account(
        alice,
        ladder,
        [RawBalanceLock(id="<script>", amount=10**10)],
        [],
        warnings=["vesting.vesting unavailable: boom"],
    )
    return composer.build()


class TestReportRenderer:
    """HTML报告渲染测试"""

    def test_filename_embeds_run_timestamp(self, clock):
        assert report_filename(clock.now) == (
            "liquidity_matrix_all_addresses_2024-06-01_12-00-00.html"
        )

    def test_render(self, run_report, alice):
        html = ReportRenderer().render(run_report.to_document())

        assert "2024-06-01 12:00:00 UTC" in html
        assert alice.ss58 in html
        assert "Locked 60+ Days" in html
        assert 'class="locked-60-plus-days"' in html
        assert "30.0000000000" in html
        assert 'class="none"' in html
        assert "vesting.vesting unavailable: boom" in html

    def test_render_escapes_chain_strings(self, run_report):
        """链上字符串经过 HTML 转义"""
        html = ReportRenderer().render(run_report.to_document())

        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_write_creates_output_dir(self, run_report, tmp_path):
        output_dir = tmp_path / "reports" / "daily"

        path = ReportRenderer().write(run_report, output_dir)

        assert path == output_dir / "liquidity_matrix_all_addresses_2024-06-01_12-00-00.html"
        assert path.read_text(encoding="utf-8").startswith("<!DOCTYPE html>")

    def test_write_failure(self, run_report, tmp_path):
        """输出路径不可写时抛出 ReportWriteError"""
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("", encoding="utf-8")

        with pytest.raises(ReportWriteError) as exc_info:
            ReportRenderer().write(run_report, blocker)
        assert exc_info.value.path.startswith(str(blocker))

    def test_write_opens_browser(self, run_report, tmp_path):
        with patch("liquidity_matrix.report.renderer.webbrowser.open", return_value=True) as mock_open:
            path = ReportRenderer().write(run_report, tmp_path, open_in_browser=True)

        mock_open.assert_called_once_with(path.resolve().as_uri())
