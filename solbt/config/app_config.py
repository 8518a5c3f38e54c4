#!filepath: solbt/config/app_config.py
from __future__ import annotations

import os

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from solbt import logs
from solbt.config.backtest_config import BacktestConfig
from solbt.config.log_config import LogConfig
from solbt.config.min_move_config import MinMoveConfigModel
from solbt.utils.errors import UserInputError


def project_root() -> str:
    """
    返回项目根目录（基于当前文件位置推导）:
    solbt/config/app_config.py → solbt/config → solbt → project_root
    """
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "../../"))


def default_config_path() -> str:
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), "base.yml")


class AppConfig(BaseModel):
    log: LogConfig = Field(default_factory=LogConfig)
    backtest: BacktestConfig
    min_move: MinMoveConfigModel = Field(default_factory=MinMoveConfigModel)

    @classmethod
    def load(cls, path: str | None = None) -> "AppConfig":
        """
        加载 YAML 配置 + .env
        - 优先级：参数 path > 环境变量 SOLBT_CONFIG > solbt/config/base.yml
        - .env 可覆盖 log level（SOLBT_LOG_LEVEL）
        - 不依赖当前工作目录
        """
        root = project_root()

        # 1) 先加载 .env（在项目根目录下）
        load_dotenv(os.path.join(root, ".env"))

        # 2) 决定配置文件路径
        if path is None:
            path = os.getenv("SOLBT_CONFIG") or default_config_path()

        if not os.path.exists(path):
            raise FileNotFoundError(f"Config file not found: {path}")

        # 3) 读取 YAML
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        if not isinstance(raw, dict):
            raise UserInputError(f"Config root must be a mapping: {path}")

        # 4) env 覆盖
        level = os.getenv("SOLBT_LOG_LEVEL")
        if level:
            raw.setdefault("log", {})["level"] = level

        try:
            cfg = cls(**raw)
        except ValidationError as e:
            raise UserInputError(f"Invalid config {path}:\n{e}") from e

        logs.info(
            f"[config] loaded {path} | backtest={cfg.backtest.name} "
            f"policies={[p.name for p in cfg.backtest.policies]}"
        )
        return cfg
