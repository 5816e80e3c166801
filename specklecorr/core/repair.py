# -*- coding: utf-8 -*-
"""
数值修复模块
提供 NaN/Inf 替换、区域填充（拉普拉斯插值）和原始值合并功能
"""

import logging
import numpy as np
from scipy import sparse
from scipy.ndimage import label
from scipy.sparse.linalg import spsolve
from typing import Tuple, Union

from ..data.models import RepairStats

logger = logging.getLogger(__name__)

# 4-邻域偏移
_NEIGHBOR_OFFSETS = ((-1, 0), (1, 0), (0, -1), (0, 1))


# ==================== 区域填充 ====================

def _shifted(array: np.ndarray, dy: int, dx: int, fill) -> np.ndarray:
    """返回 out[y, x] = array[y + dy, x + dx]，越界处为 fill"""
    out = np.full_like(array, fill)
    h, w = array.shape
    ys_dst = slice(max(-dy, 0), h - max(dy, 0))
    xs_dst = slice(max(-dx, 0), w - max(dx, 0))
    ys_src = slice(max(dy, 0), h - max(-dy, 0))
    xs_src = slice(max(dx, 0), w - max(-dx, 0))
    out[ys_dst, xs_dst] = array[ys_src, xs_src]
    return out


def _solvable_mask(mask: np.ndarray) -> np.ndarray:
    """
    掩码中与至少一个有效像素相邻的连通区域

    不接触任何有效像素的区域没有边界条件，拉普拉斯方程无唯一解
    """
    known = ~mask
    touches_known = np.zeros_like(mask)
    for dy, dx in _NEIGHBOR_OFFSETS:
        touches_known |= _shifted(known, dy, dx, False)

    labels, count = label(mask)
    if count == 0:
        return np.zeros_like(mask)

    anchored = np.unique(labels[mask & touches_known])
    anchored = anchored[anchored > 0]
    return np.isin(labels, anchored) & mask


def region_fill(values: np.ndarray,
                mask: np.ndarray,
                fill_value: Union[float, np.ndarray] = 0.0) -> np.ndarray:
    """
    区域填充（修复）

    掩码内的像素由周围有效像素平滑插值：求解以有效 4-邻域为
    狄利克雷边界、图像边缘为自然边界的离散拉普拉斯方程。
    不接触任何有效像素的掩码区域取 fill_value

    参数:
        values: 二维数值图（掩码外必须为有限值）
        mask: 待填充掩码（True 为待填充）
        fill_value: 孤立区域的填充值（标量或与 values 同形状的数组）

    返回:
        填充后的 float64 副本

    抛出:
        ValueError: 形状不一致或掩码外存在非有限值
    """
    values = np.asarray(values, dtype=np.float64)
    mask = np.asarray(mask, dtype=bool)

    if values.ndim != 2:
        raise ValueError(f"区域填充需要二维数组，当前维度为{values.ndim}")
    if mask.shape != values.shape:
        raise ValueError(f"掩码形状{mask.shape}与数据形状{values.shape}不一致")
    if not np.all(np.isfinite(values[~mask])):
        raise ValueError("掩码外存在NaN或Inf，无法作为边界条件")

    filled = values.copy()
    if not mask.any():
        return filled

    solvable = _solvable_mask(mask)
    isolated = mask & ~solvable
    if np.any(isolated):
        fill = np.broadcast_to(np.asarray(fill_value, dtype=np.float64), values.shape)
        filled[isolated] = fill[isolated]

    n = int(np.count_nonzero(solvable))
    if n == 0:
        return filled

    # 未知量编号
    index = np.full(values.shape, -1, dtype=np.int64)
    index[solvable] = np.arange(n)

    h, w = values.shape
    ys, xs = np.nonzero(solvable)
    rows = []
    cols = []
    data = []
    diag = np.zeros(n)
    rhs = np.zeros(n)
    own = index[ys, xs]

    for dy, dx in _NEIGHBOR_OFFSETS:
        ny = ys + dy
        nx = xs + dx
        inside = (ny >= 0) & (ny < h) & (nx >= 0) & (nx < w)
        src = own[inside]
        ny = ny[inside]
        nx = nx[inside]
        diag[src] += 1.0

        neighbor = index[ny, nx]
        unknown = neighbor >= 0
        rows.append(src[unknown])
        cols.append(neighbor[unknown])
        data.append(-np.ones(int(np.count_nonzero(unknown))))

        # 有效邻域移到右端（可求解区域只与有效像素或自身相邻）
        known = ~unknown
        np.add.at(rhs, src[known], values[ny[known], nx[known]])

    rows.append(np.arange(n))
    cols.append(np.arange(n))
    data.append(diag)

    matrix = sparse.csr_matrix(
        (np.concatenate(data), (np.concatenate(rows), np.concatenate(cols))),
        shape=(n, n)
    )
    solution = np.atleast_1d(spsolve(matrix, rhs))
    filled[ys, xs] = solution
    return filled


# ==================== 无效值处理 ====================

def replace_invalid(corrected: np.ndarray,
                    raw: np.ndarray) -> Tuple[np.ndarray, int, int]:
    """
    NaN 和 Inf 像素替换为同位置的原始对比度

    参数:
        corrected: 校正后的对比度图
        raw: 原始对比度图

    返回:
        (替换后的副本, NaN 数量, Inf 数量)
    """
    out = np.array(corrected, dtype=np.float64, copy=True)
    raw = np.asarray(raw, dtype=np.float64)

    nan_mask = np.isnan(out)
    inf_mask = np.isinf(out)
    out[nan_mask] = raw[nan_mask]
    out[inf_mask] = raw[inf_mask]
    return out, int(nan_mask.sum()), int(inf_mask.sum())


def sanitize_raw(raw: np.ndarray) -> Tuple[np.ndarray, int]:
    """
    原始对比度中的非有限值（局部均值为 0 的暗区）和负值

    由周围有效像素区域填充，无有效邻域的区域置 0

    返回:
        (修复后的副本, 修复像素数)
    """
    raw = np.asarray(raw, dtype=np.float64)
    invalid = ~(np.isfinite(raw) & (raw >= 0))
    count = int(invalid.sum())
    if count == 0:
        return raw.copy(), 0

    logger.debug("原始对比度中 %d 个像素为非有限值或负值，执行区域填充", count)
    filled = region_fill(np.where(invalid, 0.0, raw), invalid, fill_value=0.0)
    return np.maximum(filled, 0.0), count


def repair_corrected(corrected: np.ndarray,
                     raw: np.ndarray,
                     floor: float = 0.01) -> Tuple[np.ndarray, RepairStats]:
    """
    校正结果修复流程

    1. NaN/Inf 替换为原始值
    2. 低于 floor 的像素视为发散，由周围有效像素区域填充；
       不接触有效像素的区域取原始值

    参数:
        corrected: 校正后的对比度图
        raw: 原始对比度图（须为有限非负值，见 sanitize_raw）
        floor: 有效下限

    返回:
        (修复后的对比度图, RepairStats)
    """
    stats = RepairStats()
    repaired, stats.nan_replaced, stats.inf_replaced = replace_invalid(corrected, raw)

    invalid = ~(repaired >= floor)
    if np.any(invalid):
        solvable = _solvable_mask(invalid)
        stats.region_filled = int(solvable.sum())
        stats.isolated_filled = int(invalid.sum()) - stats.region_filled
        repaired = region_fill(np.where(invalid, 0.0, repaired), invalid, fill_value=raw)

    logger.debug("修复统计: %s", stats.to_dict())
    return repaired, stats


def merge_with_raw(corrected: np.ndarray,
                   raw: np.ndarray,
                   r_primary: np.ndarray) -> np.ndarray:
    """
    合并：满量程饱和率为 0 的像素保留原始对比度（无偏），其余取校正值

    参数:
        corrected: 修复后的校正对比度图
        raw: 原始对比度图
        r_primary: 满量程阈值下的饱和率

    返回:
        合并后的对比度图
    """
    return np.where(np.asarray(r_primary) > 0, corrected, raw)
