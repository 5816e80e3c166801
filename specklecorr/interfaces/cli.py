# -*- coding: utf-8 -*-
"""
命令行接口
提供命令行工具入口
"""

import argparse
import logging
import sys
from typing import Optional

from .. import config
from ..services import OverExposureCorrectionService
from ..data.models import WindowConfig, CorrectionConfig
from ..data.io import save_correction_config


def create_parser() -> argparse.ArgumentParser:
    """创建命令行参数解析器"""
    parser = argparse.ArgumentParser(
        prog='specklecorr',
        description='激光散斑对比度成像过曝校正命令行工具',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
示例:
  # 8位图像序列，7x7 窗口，单步校正
  python -m specklecorr correct -i ./frames -o ./output -n 7 -s 255

  # 16位图像序列，两步嵌套外推，保存 1/K² 预览
  python -m specklecorr correct -i ./frames -o ./output -n 11 -s 65500 --iterations 2 --preview

  # 导出默认校正系数，修改后通过 --config 使用
  python -m specklecorr init-config -o correction.json
        '''
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='输出调试日志')

    subparsers = parser.add_subparsers(dest='command', help='可用命令')

    # correct 子命令
    corr_parser = subparsers.add_parser('correct', help='校正图像序列')
    corr_parser.add_argument('-i', '--input', required=True, help='输入图像目录')
    corr_parser.add_argument('-o', '--output', default=config.OUTPUT_DIR, help='输出目录')
    corr_parser.add_argument('-n', '--window', type=int, default=config.WINDOW_SIZE,
                             help='NxN 窗口大小')
    corr_parser.add_argument('-s', '--saturation', type=float, default=None,
                             help='饱和上限（默认按数据类型推断）')
    corr_parser.add_argument('--iterations', type=int, choices=(1, 2), default=config.ITERATIONS,
                             help='1=单步校正, 2=两步嵌套外推')
    corr_parser.add_argument('--config', help='校正系数JSON文件（可选）')
    corr_parser.add_argument('--workers', type=int, default=1, help='并行线程数')
    corr_parser.add_argument('--format', choices=('npy', 'tiff'), default='npy', help='输出格式')
    corr_parser.add_argument('--preview', action='store_true', help='保存 1/K² 预览图')

    # init-config 子命令
    init_parser = subparsers.add_parser('init-config', help='导出默认校正系数配置')
    init_parser.add_argument('-o', '--output', required=True, help='配置文件路径')

    return parser


def progress_callback(current: int, total: int, message: str) -> None:
    """命令行进度回调"""
    print(f"[{current}/{total}] {message}")


def run_correct(args) -> int:
    """执行校正命令"""
    print("=" * 60)
    print("激光散斑过曝校正")
    print("=" * 60)

    try:
        service = OverExposureCorrectionService(
            window_config=WindowConfig(size=args.window),
            saturation_level=args.saturation,
            iterations=args.iterations,
            max_workers=args.workers
        )

        if args.config:
            print(f"\n加载校正系数: {args.config}")
            service.load_correction_config(args.config)

        info = service.get_config_info()
        print(f"窗口大小: {info['window_size']}x{info['window_size']}")
        print(f"校正模型: {info['model']}  阈值层级: {info['levels']}")

        print(f"\n输入目录: {args.input}")
        print(f"输出目录: {args.output}")

        batch = service.correct_directory(
            args.input,
            args.output,
            save_format=args.format,
            save_preview=args.preview,
            progress_callback=progress_callback
        )

        stats = batch.result.stats
        print(f"\n处理完成:")
        print(f"  图像数量: {stats['frame_count']}")
        print(f"  饱和上限: {stats['saturation_level']:g}")
        print(f"  饱和像素占比: {stats['saturated_rate']:.2f}%")
        print(f"  修复像素: NaN {stats['nan_replaced']}, Inf {stats['inf_replaced']}, "
              f"区域填充 {stats['region_filled']}")
        for name, path in batch.saved_paths.items():
            print(f"  {name}: {path}")

        return 0

    except Exception as e:
        print(f"\n错误: {e}")
        return 1


def run_init_config(args) -> int:
    """导出默认校正系数"""
    try:
        path = save_correction_config(CorrectionConfig(), args.output)
        print(f"默认校正系数已保存: {path}")
        return 0
    except Exception as e:
        print(f"\n错误: {e}")
        return 1


def main(args: Optional[list] = None) -> int:
    """主入口"""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed_args.verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    if parsed_args.command is None:
        parser.print_help()
        return 0

    commands = {
        'correct': run_correct,
        'init-config': run_init_config
    }

    handler = commands.get(parsed_args.command)
    if handler:
        return handler(parsed_args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
