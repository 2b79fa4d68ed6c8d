from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from .config import SubtranslateConfig
from .env import load_dotenv_if_present
from .errors import SubtranslateError
from .orchestrator import translate_subtitle_items
from .ratelimit import RateLimiter
from .subtitles import parse_srt, write_srt
from .translate import ENGINE_NAMES, get_translation_engine


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="subtranslate",
        description="subtranslate: 按需翻译 SRT 字幕并缓存结果。",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="日志级别（默认 INFO，可通过环境变量 SUBTRANSLATE_LOG_LEVEL 配置）。",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_translate = sub.add_parser("translate", help="同步翻译本地 SRT 文件（不经过缓存）。")
    p_translate.add_argument("input", type=str, help="输入 SRT 文件路径。")
    p_translate.add_argument(
        "--to",
        type=str,
        default=None,
        help="目标语言代码（如 zh-CN, fr），默认读取 SUBTRANSLATE_DEFAULT_TO。",
    )
    p_translate.add_argument(
        "--engine",
        type=str,
        choices=list(ENGINE_NAMES),
        default=None,
        help="翻译引擎：google_free / google_cloud / deepl。",
    )
    p_translate.add_argument(
        "--output",
        type=str,
        default=None,
        help="输出路径（默认: 与输入同目录，文件名加 .<语言> 后缀）。",
    )
    p_translate.add_argument(
        "--max-batch-chars",
        type=int,
        default=None,
        help="单批次最大字符数（默认 4000）。",
    )

    p_serve = sub.add_parser("serve", help="启动 HTTP 服务。")
    p_serve.add_argument("--host", type=str, default=None, help="监听地址（默认 127.0.0.1）。")
    p_serve.add_argument("--port", type=int, default=None, help="监听端口（默认 3000）。")
    return parser


def _configure_logging(level_name: str | None) -> None:
    level_name = (level_name or os.getenv("SUBTRANSLATE_LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run_translate(args: argparse.Namespace) -> Path:
    config = SubtranslateConfig.from_env(
        engine=args.engine,
        default_to=args.to,
        max_batch_chars=args.max_batch_chars,
    )
    input_path = Path(args.input).expanduser().resolve()
    if args.output:
        output_path = Path(args.output).expanduser().resolve()
    else:
        output_path = input_path.with_name(f"{input_path.stem}.{config.default_to}.srt")

    limiter = RateLimiter(
        min_interval=config.rate_min_interval,
        max_concurrent=config.rate_max_concurrent,
    )
    engine = get_translation_engine(config.engine, config, limiter)
    source_text = input_path.read_text(encoding="utf-8-sig", errors="replace")
    items = translate_subtitle_items(
        parse_srt(source_text),
        engine,
        config.default_to,
        max_chars=config.max_batch_chars,
    )
    return write_srt(items, output_path)


def main(argv: list[str] | None = None) -> int:
    # 确保在解析参数和使用配置之前加载 .env 中的环境变量
    load_dotenv_if_present()
    if argv is None:
        argv = sys.argv[1:]

    parser = build_arg_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level)

    try:
        if args.command == "serve":
            from .web import main as web_main

            web_main(host=args.host, port=args.port)
            return 0

        output_path = run_translate(args)
        print("字幕翻译完成")
        print(f"   输入: {Path(args.input)}")
        print(f"   输出: {output_path}")
        return 0
    except KeyboardInterrupt:
        print("\n用户中断")
        return 1
    except (SubtranslateError, OSError) as exc:
        print(f"处理失败: {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
