# -*- coding: utf-8 -*-
"""
文件读写模块
提供散斑图像、对比度图、校正系数配置的读写功能
"""

import json
import re
import numpy as np
from PIL import Image
from pathlib import Path
from typing import List, Optional, Union

from .. import config
from .models import CorrectionConfig
from .converters import contrast_to_inverse_k2, scale_to_uint8


# ==================== 图像读写 ====================

def read_speckle_image(image_path: Union[str, Path]) -> np.ndarray:
    """
    读取单通道散斑图像

    支持格式: PNG, TIF/TIFF（8位、16位、32位浮点）
    保留原始位深，不做归一化

    参数:
        image_path: 图像文件路径

    返回:
        图像数组（原始数据类型）

    抛出:
        FileNotFoundError: 文件不存在
        ValueError: 多通道图像
    """
    image_path = Path(image_path)

    if not image_path.exists():
        raise FileNotFoundError(f"图像文件不存在: {image_path}")

    with Image.open(str(image_path)) as image:
        if image.mode in ('RGB', 'RGBA', 'CMYK', 'P', 'LA'):
            raise ValueError(f"仅支持单通道图像，当前模式为{image.mode}: {image_path}")
        array = np.array(image)

    # 16位PNG在部分Pillow版本中以 int32 ('I' 模式) 读出
    if array.dtype == np.int32 and array.size > 0 and array.min() >= 0 and array.max() <= 65535:
        array = array.astype(np.uint16)
    return array


def save_contrast_map(map_array: np.ndarray,
                      output_path: Union[str, Path],
                      create_dir: bool = True) -> str:
    """
    保存对比度图/饱和率图

    扩展名为 .npy 时保存为 numpy 数组（float64），
    否则保存为 32 位浮点 TIFF

    参数:
        map_array: 二维数组
        output_path: 输出路径
        create_dir: 是否自动创建目录

    返回:
        实际保存路径
    """
    output_path = Path(output_path)

    if create_dir:
        output_path.parent.mkdir(parents=True, exist_ok=True)

    if output_path.suffix.lower() == '.npy':
        np.save(str(output_path), np.asarray(map_array, dtype=np.float64))
    else:
        if output_path.suffix.lower() not in ('.tif', '.tiff'):
            output_path = output_path.with_suffix('.tiff')
        Image.fromarray(np.asarray(map_array, dtype=np.float32)).save(str(output_path))
    return str(output_path)


def load_contrast_map(map_path: Union[str, Path]) -> np.ndarray:
    """
    读取 save_contrast_map 保存的图

    参数:
        map_path: .npy 或 .tiff 路径

    返回:
        float64 数组
    """
    map_path = Path(map_path)

    if not map_path.exists():
        raise FileNotFoundError(f"文件不存在: {map_path}")

    if map_path.suffix.lower() == '.npy':
        return np.load(str(map_path)).astype(np.float64)
    with Image.open(str(map_path)) as image:
        return np.array(image, dtype=np.float64)


def save_inverse_k2_preview(k_map: np.ndarray,
                            output_path: Union[str, Path],
                            vmin: float = config.PREVIEW_VMIN,
                            vmax: float = config.PREVIEW_VMAX) -> str:
    """
    保存 1/K² 预览图（8位PNG）

    参数:
        k_map: 对比度图
        output_path: 输出路径
        vmin: 显示下限
        vmax: 显示上限

    返回:
        实际保存路径
    """
    output_path = Path(output_path).with_suffix('.png')
    output_path.parent.mkdir(parents=True, exist_ok=True)

    preview = scale_to_uint8(contrast_to_inverse_k2(k_map), vmin, vmax)
    Image.fromarray(preview).save(str(output_path))
    return str(output_path)


# ==================== 文件枚举 ====================

def _natural_key(path: Path) -> list:
    """文件名自然排序键（1.png, 2.png, 10.png）"""
    return [int(t) if t.isdigit() else t.lower() for t in re.split(r'(\d+)', path.name)]


def list_image_files(directory: Union[str, Path],
                     patterns: Optional[List[str]] = None) -> List[str]:
    """
    列出目录中的所有图像文件

    参数:
        directory: 目录路径
        patterns: 文件模式列表

    返回:
        图像文件路径列表（自然排序），目录不存在时返回空列表
    """
    if patterns is None:
        patterns = config.IMAGE_PATTERNS

    directory = Path(directory)

    if not directory.exists():
        return []

    # 收集文件（去重，大小写不敏感的文件系统上模式会重复命中）
    image_files = set()
    for pattern in patterns:
        for f in directory.glob(pattern):
            image_files.add(f.resolve())

    return [str(f) for f in sorted(image_files, key=_natural_key)]


# ==================== 校正系数读写 ====================

def save_correction_config(correction_config: CorrectionConfig,
                           filepath: Union[str, Path]) -> str:
    """
    保存校正系数配置到JSON文件

    参数:
        correction_config: CorrectionConfig对象
        filepath: 保存路径

    返回:
        实际保存路径
    """
    filepath = Path(filepath)

    if filepath.suffix.lower() != '.json':
        filepath = filepath.with_suffix('.json')

    filepath.parent.mkdir(parents=True, exist_ok=True)

    data = {
        'config_type': 'overexposure_correction',
        **correction_config.to_dict()
    }

    with open(filepath, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)

    return str(filepath)


def load_correction_config(filepath: Union[str, Path]) -> CorrectionConfig:
    """
    从JSON文件加载校正系数配置

    缺省字段使用默认值

    参数:
        filepath: 配置文件路径

    返回:
        CorrectionConfig对象

    抛出:
        FileNotFoundError: 文件不存在
        ValueError: 格式无法识别
    """
    filepath = Path(filepath)

    if not filepath.exists():
        raise FileNotFoundError(f"配置文件不存在: {filepath}")

    with open(filepath, 'r', encoding='utf-8') as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError("无法识别的配置格式")
    if data.get('config_type', 'overexposure_correction') != 'overexposure_correction':
        raise ValueError(f"无法识别的配置类型: {data.get('config_type')}")

    return CorrectionConfig.from_dict(data)
