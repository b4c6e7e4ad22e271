"""
配置管理
"""
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from liquidity_matrix.utils.exceptions import ConfigurationError


class Settings(BaseSettings):
    """全局配置"""

    # 链连接配置
    network: str = Field(default="polkadot", alias="NETWORK")
    rpc_url: Optional[str] = Field(default=None, alias="RPC_URL")
    ss58_format: Optional[int] = Field(default=None, alias="SS58_FORMAT")
    chain_max_retries: int = Field(default=3, alias="CHAIN_MAX_RETRIES")

    # 日志与输出
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    output_dir: Path = Field(default=Path("."), alias="OUTPUT_DIR")
    open_report: bool = Field(default=False, alias="OPEN_REPORT")

    # 功能开关
    include_split_votes: bool = Field(default=True, alias="INCLUDE_SPLIT_VOTES")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class ChainParams(BaseModel):
    """链参数（出块时间、锁仓周期、创世锚点）"""

    name: str = Field(default="polkadot", description="网络名称")
    rpc_url: str = Field(default="wss://rpc.polkadot.io", description="WebSocket RPC地址")
    ss58_format: int = Field(default=0, description="SS58地址前缀")
    block_time_seconds: int = Field(default=6, description="出块时间（秒）")
    base_lock_period_days: int = Field(default=28, description="conviction基础锁仓周期（天）")
    genesis_threshold: int = Field(default=9_000_000, description="早期区块阈值")
    genesis_epoch: datetime = Field(
        default=datetime(2020, 5, 26, 15, 36, 18, tzinfo=timezone.utc),
        description="block 1 的时间",
    )
    later_epoch: datetime = Field(
        default=datetime(2023, 8, 25, 13, 1, 0, tzinfo=timezone.utc),
        description="后期锚点时间",
    )
    later_epoch_block: int = Field(default=17_100_000, description="后期锚点对应的区块高度")


class ConfigManager:
    """配置管理器"""

    def __init__(self, config_dir: Optional[Path] = None):
        """
        初始化配置管理器

        Args:
            config_dir: 配置文件目录，默认为包内的config/
        """
        if config_dir is None:
            config_dir = Path(__file__).parent.parent / "config"

        self.config_dir = config_dir
        self._networks: Optional[Dict[str, Any]] = None
        self._settings: Optional[Settings] = None

    @property
    def settings(self) -> Settings:
        """获取全局设置"""
        if self._settings is None:
            self._settings = Settings()
        return self._settings

    @property
    def networks(self) -> Dict[str, Any]:
        """
        获取网络参数配置。

        配置文件位于 config/chain.yaml，格式示例：

        networks:
          polkadot:
            rpc_url: wss://rpc.polkadot.io
            block_time_seconds: 6
        """
        if self._networks is None:
            try:
                self._networks = self._load_yaml("chain.yaml").get("networks") or {}
            except FileNotFoundError:
                # 未提供 chain.yaml 时使用内置默认值
                self._networks = {}
        return self._networks

    def get_chain_params(self, network: Optional[str] = None) -> ChainParams:
        """
        获取指定网络的链参数，环境变量中的 RPC_URL / SS58_FORMAT 优先

        Args:
            network: 网络名称，默认取 settings.network

        Returns:
            ChainParams实例
        """
        name = (network or self.settings.network).lower()
        raw = dict(self.networks.get(name) or {})
        raw.setdefault("name", name)

        if self.settings.rpc_url:
            raw["rpc_url"] = self.settings.rpc_url
        if self.settings.ss58_format is not None:
            raw["ss58_format"] = self.settings.ss58_format

        try:
            return ChainParams(**raw)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid chain parameters for {name}: {e}")

    def _load_yaml(self, filename: str) -> Dict[str, Any]:
        """加载YAML配置文件"""
        filepath = self.config_dir / filename
        if not filepath.exists():
            raise FileNotFoundError(filepath)

        try:
            with open(filepath, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse {filename}: {e}")

        if not isinstance(data, dict):
            raise ConfigurationError(f"{filename} must contain a mapping at top level")
        return data


# 全局配置实例
config = ConfigManager()
