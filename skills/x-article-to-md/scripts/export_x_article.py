#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
把浏览器保存的 X（Twitter）长文页面导出为 Markdown + 本地 images 目录。

依赖说明：
- 必需依赖：requests（图片下载）
- HTML 解析仅用标准库 HTMLParser（不依赖 bs4/lxml）

设计要点：
- 只识别 X 长文的富文本结构（twitterArticleRichTextView → div[data-contents="true"]），
  不做通用网页转换
- 段落 / 二级标题 / 引用 / 图片组四种块；粗体、斜体、链接、换行、行内图片按行内处理
- pbs.twimg.com 图片统一请求原图（name=orig），按规范化 URL 去重，文件名 image-01.jpg ...
- 图片严格串行下载，相邻两张之间休眠 --image-delay-ms + 0~249ms 抖动；
  原图失败时回退原始 URL，两者都失败则整体失败
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Optional, Sequence

# 支持通过 importlib 直接加载本脚本时导入同级 package
_SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
if _SCRIPT_DIR not in sys.path:
    sys.path.insert(0, _SCRIPT_DIR)

from x_article_to_md.article import export_article, extract_article, resolve_base_dir
from x_article_to_md.errors import ImageFetchError, XArticleError
from x_article_to_md.http_client import UA_PRESETS, RequestsTransport, create_session
from x_article_to_md.models import DEFAULT_IMAGE_DELAY_MS, ExportConfig, ExportPayload, ImageRef
from x_article_to_md.output import FilesystemSink, validate_markdown
from x_article_to_md.settings import load_image_delay, normalize_delay, save_image_delay


# ============================================================================
# 退出码定义
# ============================================================================
EXIT_SUCCESS = 0
EXIT_ERROR = 1

X_REFERER = "https://x.com/"


def _delay_arg(value: str) -> int:
    return normalize_delay(value, default=DEFAULT_IMAGE_DELAY_MS)


def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return f.read()


def _load_payload(args: argparse.Namespace, config: ExportConfig) -> ExportPayload:
    if args.from_payload:
        with open(args.from_payload, "r", encoding="utf-8") as f:
            data = json.load(f)
        payload = ExportPayload.from_dict(data)
        if not args.json:
            print(f"从载荷文件读取：{args.from_payload}")
        return payload

    if not os.path.isfile(args.input):
        raise FileNotFoundError(f"输入文件不存在：{args.input}")
    page_html = _read_text(args.input)
    if not args.json:
        print(f"从本地文件读取：{args.input}")
    return extract_article(page_html, page_url=args.page_url or "", config=config)


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(
        description="把保存的 X 长文页面 HTML 导出为 Markdown + images 目录。",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例：
  python export_x_article.py whole_article.html
  python export_x_article.py whole_article.html output --image-delay-ms 1500

  # 只输出载荷 JSON（不下载图片）
  python export_x_article.py whole_article.html --json > payload.json

  # 从载荷 JSON 导出
  python export_x_article.py --from-payload payload.json output
""",
    )
    ap.add_argument("input", nargs="?", help="保存的 X 长文页面 HTML 文件")
    ap.add_argument("output_dir", nargs="?", default="output", help="输出目录（默认 output）")
    ap.add_argument(
        "--image-delay-ms",
        type=_delay_arg,
        default=None,
        help=f"相邻图片下载的间隔毫秒数（默认读取已保存设置，否则 {DEFAULT_IMAGE_DELAY_MS}），另加 0~249ms 随机抖动",
    )
    ap.add_argument("--save-delay", action="store_true", help="把本次 --image-delay-ms 保存为以后的默认值")
    ap.add_argument("--page-url", help="页面地址；找不到文章链接时作为 Source 使用")
    ap.add_argument("--flat", action="store_true", help="直接写入输出目录，不创建 <日期>-<标题> 子目录")
    ap.add_argument("--json", action="store_true", help="只打印导出载荷 JSON，不下载图片、不写文件")
    ap.add_argument("--from-payload", metavar="FILE", help="从导出载荷 JSON 文件导出（替代 HTML 输入）")
    ap.add_argument("--validate", action="store_true", help="导出后校验 Markdown 中的图片引用是否都已落盘")
    ap.add_argument("--timeout", type=int, default=30, help="单张图片请求超时（秒），默认 30")
    ap.add_argument("--ua-preset", choices=sorted(UA_PRESETS.keys()), default="chrome-win", help="User-Agent 预设（默认 chrome-win）")
    ap.add_argument("--user-agent", "--ua", dest="user_agent", help="自定义 User-Agent（优先于 --ua-preset）")
    ap.add_argument("--verbose", action="store_true", help="输出调试日志")
    try:
        args = ap.parse_args(argv)
    except SystemExit as e:
        # argparse 用法错误默认退出码为 2，统一映射为 EXIT_ERROR；--help 仍按 0 退出
        if e.code in (0, None):
            raise
        return EXIT_ERROR

    if not args.input and not args.from_payload:
        ap.print_usage(sys.stderr)
        print("错误：必须提供输入 HTML 文件，或使用 --from-payload", file=sys.stderr)
        return EXIT_ERROR

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # --from-payload 模式下唯一的位置参数是输出目录
    if args.from_payload and args.input and args.output_dir == "output":
        args.output_dir, args.input = args.input, None

    if args.image_delay_ms is None:
        delay_ms = load_image_delay()
    else:
        delay_ms = args.image_delay_ms
        if args.save_delay:
            path = save_image_delay(delay_ms)
            # --json 模式下 stdout 只输出载荷
            print(f"已保存默认图片间隔：{delay_ms}ms → {path}", file=sys.stderr if args.json else sys.stdout)

    config = ExportConfig(
        image_delay_ms=delay_ms,
        timeout=args.timeout,
        ua_preset=args.ua_preset,
        flat=args.flat,
    )

    try:
        payload = _load_payload(args, config)

        if args.json:
            print(json.dumps(payload.to_dict(), ensure_ascii=False, indent=2))
            return EXIT_SUCCESS

        base_dir = resolve_base_dir(payload, os.path.abspath(args.output_dir), config)
        sink = FilesystemSink(base_dir)
        session = create_session(config.ua_preset, args.user_agent, referer_url=X_REFERER)
        transport = RequestsTransport(session, config.timeout, max_bytes=config.max_image_bytes)

        def progress(current: int, total: int, image: ImageRef) -> None:
            print(f"  [{current}/{total}] {image.filename}")

        print(f"发现图片：{len(payload.images)} 张，开始下载到：{sink.image_dir}")
        result = export_article(payload, sink, transport, config, progress_callback=progress)
    except ImageFetchError as e:
        print(f"错误：{e}", file=sys.stderr)
        print("已下载的图片和 article.md 保留在输出目录中。", file=sys.stderr)
        return EXIT_ERROR
    except (XArticleError, OSError, ValueError) as e:
        print(f"错误：{e}", file=sys.stderr)
        return EXIT_ERROR

    print(f"Markdown 已写入：{result.markdown_path}")
    print(f"图片数量：{result.image_count}")
    print(f"图片目录：{result.image_dir}")
    print(f"图片间隔：{result.delay_ms}ms（另加最多 249ms 随机抖动）")

    if args.validate:
        check = validate_markdown(result.markdown_path, result.image_dir)
        print("\n校验结果：")
        print(f"- 图片引用数（总）：{check.image_refs}")
        print(f"- 图片引用数（本地）：{check.local_image_refs}")
        print(f"- images 文件数：{check.image_files}")
        if check.missing_files:
            print("- 缺失文件：")
            for m in check.missing_files:
                print(f"  - {m}")
            return EXIT_ERROR
        print("- 缺失文件：0")

    return EXIT_SUCCESS


if __name__ == "__main__":
    raise SystemExit(main())
