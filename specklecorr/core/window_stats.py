# -*- coding: utf-8 -*-
"""
窗口统计模块
提供 NxN 邻域局部均值与局部标准差
"""

import numpy as np
from scipy.ndimage import uniform_filter
from typing import Tuple

from .. import config
from ..errors import ConfigurationError

DEFAULT_BOUNDARY_MODE = config.BOUNDARY_MODE

_SUPPORTED_MODES = ('reflect', 'nearest', 'mirror', 'constant', 'wrap')


def validate_window_size(size: int) -> int:
    """
    验证窗口大小

    参数:
        size: 窗口边长 N

    返回:
        整数窗口大小

    抛出:
        ConfigurationError: 非正整数
    """
    if isinstance(size, bool) or not isinstance(size, (int, np.integer)):
        raise ConfigurationError(f"窗口大小必须为正整数，当前为{size!r}")
    if size <= 0:
        raise ConfigurationError(f"窗口大小必须为正整数，当前为{size}")
    return int(size)


def validate_boundary_mode(mode: str) -> str:
    """验证边界延拓方式"""
    if mode not in _SUPPORTED_MODES:
        raise ConfigurationError(f"不支持的边界方式: {mode}，可选 {_SUPPORTED_MODES}")
    return mode


def local_mean(frame: np.ndarray,
               size: int,
               mode: str = DEFAULT_BOUNDARY_MODE) -> np.ndarray:
    """
    局部均值（归一化盒式滤波）

    输出尺寸与输入相同

    参数:
        frame: 二维数组
        size: 窗口边长 N
        mode: 边界延拓方式（须与标准差、饱和率计算一致）

    返回:
        局部均值 (float64)
    """
    return local_mean_std(frame, size, mode)[0]


def local_std(frame: np.ndarray,
              size: int,
              mode: str = DEFAULT_BOUNDARY_MODE) -> np.ndarray:
    """
    局部标准差（总体标准差，除以 N²）

    参数:
        frame: 二维数组
        size: 窗口边长 N
        mode: 边界延拓方式

    返回:
        局部标准差 (float64)
    """
    return local_mean_std(frame, size, mode)[1]


def _roundoff_scale(values: np.ndarray, size: int) -> Tuple[float, float]:
    """
    盒式滤波累加舍入误差的量级

    uniform_filter 按滑动和计算，全零窗口紧邻亮区时均值不为精确的 0。
    滑动和的误差沿扫描线累积，均值容差取 eps * N² * sqrt(L) * max|x|
    （L 为最长边），E[x²] 的容差再乘以 max|x|

    返回:
        (均值容差, 方差容差)
    """
    peak = float(np.max(np.abs(values))) if values.size else 0.0
    if not np.isfinite(peak):
        return 0.0, 0.0
    line = max(values.shape) if values.ndim else 1
    tol = float(np.finfo(np.float64).eps) * size * size * np.sqrt(line) * peak
    return tol, tol * peak


def local_mean_std(frame: np.ndarray,
                   size: int,
                   mode: str = DEFAULT_BOUNDARY_MODE) -> Tuple[np.ndarray, np.ndarray]:
    """
    同时计算局部均值和局部标准差

    方差按 E[x²] - E[x]² 计算。低于舍入误差量级的均值和方差置为 0，
    全零窗口得到 mean = std = 0（对比度为 NaN，由修复步骤处理）

    参数:
        frame: 二维数组
        size: 窗口边长 N
        mode: 边界延拓方式

    返回:
        (mean, std) 元组
    """
    size = validate_window_size(size)
    values = np.asarray(frame, dtype=np.float64)
    mean_tol, var_tol = _roundoff_scale(values, size)

    mean = uniform_filter(values, size=size, mode=mode)
    mean_sq = uniform_filter(values * values, size=size, mode=mode)
    mean[np.abs(mean) <= mean_tol] = 0.0

    variance = mean_sq - mean * mean
    variance[variance <= var_tol] = 0.0

    return mean, np.sqrt(variance)
