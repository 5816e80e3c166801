# -*- coding: utf-8 -*-
"""
数值转换模块
提供帧数据类型拓宽、饱和上限推断、1/K² 换算功能
"""

import numpy as np
from typing import Union

from ..errors import ConfigurationError


# ==================== 帧转换 ====================

def to_float_frame(frame: np.ndarray) -> np.ndarray:
    """
    将单通道帧拓宽为 float64

    参数:
        frame: 帧数组（uint8 / uint16 / float）

    返回:
        float64 数组

    抛出:
        ConfigurationError: 非二维数组
    """
    arr = np.asarray(frame)
    if arr.ndim != 2:
        raise ConfigurationError(f"帧必须为单通道二维数组，当前维度为{arr.ndim}")
    return arr.astype(np.float64)


def default_saturation_level(dtype: Union[np.dtype, type]) -> float:
    """
    根据数据类型推断饱和上限

    整数类型取该类型最大值（uint8: 255, uint16: 65535），
    浮点类型视为归一化数据，取 1.0

    参数:
        dtype: numpy 数据类型

    返回:
        饱和上限
    """
    dtype = np.dtype(dtype)
    if np.issubdtype(dtype, np.integer):
        return float(np.iinfo(dtype).max)
    if np.issubdtype(dtype, np.floating):
        return 1.0
    raise ConfigurationError(f"不支持的数据类型: {dtype}")


# ==================== 对比度换算 ====================

def contrast_to_inverse_k2(k_map: np.ndarray) -> np.ndarray:
    """
    对比度转换为 1/K²（与血流速度正相关的显示量）

    K 为 0 或非有限值的像素输出 0

    参数:
        k_map: 对比度图

    返回:
        1/K² 图 (float64)
    """
    k = np.asarray(k_map, dtype=np.float64)
    out = np.zeros_like(k)
    valid = np.isfinite(k) & (k > 0)
    out[valid] = 1.0 / k[valid] ** 2
    return out


def scale_to_uint8(values: np.ndarray, vmin: float, vmax: float) -> np.ndarray:
    """
    线性映射到 [0, 255] 的 uint8

    参数:
        values: 输入数组
        vmin: 映射为 0 的值
        vmax: 映射为 255 的值

    返回:
        uint8 数组
    """
    if vmax <= vmin:
        raise ValueError(f"显示范围无效: vmin={vmin}, vmax={vmax}")
    scaled = (np.asarray(values, dtype=np.float64) - vmin) / (vmax - vmin)
    scaled = np.nan_to_num(scaled, nan=0.0, posinf=1.0, neginf=0.0)
    return np.round(np.clip(scaled, 0.0, 1.0) * 255).astype(np.uint8)
