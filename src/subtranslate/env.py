from __future__ import annotations

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def load_dotenv_if_present(env_path: Optional[str | Path] = None) -> None:
    """
    尝试加载 .env 文件（如果存在）。

    - 默认依次查找当前工作目录与 src/subtranslate/ 之上的仓库根目录；
    - 已存在的环境变量不会被覆盖。
    """
    if env_path is not None:
        candidates = [Path(env_path)]
    else:
        root = Path(__file__).resolve().parents[2]
        candidates = [Path.cwd() / ".env", root / ".env"]

    for env_file in candidates:
        if env_file.is_file():
            load_dotenv(dotenv_path=env_file, override=False)
            return
