# -*- coding: utf-8 -*-
"""
核心算法层
提供窗口统计、饱和率、阈值扫描、外推、偏差校正与修复算法
"""

from .window_stats import (
    local_mean,
    local_std,
    local_mean_std,
    validate_window_size
)

from .saturation import (
    saturation_mask,
    saturation_ratio,
    clamp_to_level,
    threshold_levels,
    validate_saturation_level
)

from .contrast import (
    frame_contrast,
    SweepAccumulator,
    sweep_sequence
)

from .extrapolator import (
    first_order_extrapolation,
    nested_extrapolation,
    extrapolate_kappa_squared,
    validate_level_count
)

from .corrector import (
    rational_correction,
    quadratic_correction,
    correct_one_step,
    correct_two_step,
    apply_correction
)

from .repair import (
    region_fill,
    replace_invalid,
    sanitize_raw,
    repair_corrected,
    merge_with_raw
)

__all__ = [
    # Window Statistics
    'local_mean',
    'local_std',
    'local_mean_std',
    'validate_window_size',
    # Saturation
    'saturation_mask',
    'saturation_ratio',
    'clamp_to_level',
    'threshold_levels',
    'validate_saturation_level',
    # Threshold Sweep
    'frame_contrast',
    'SweepAccumulator',
    'sweep_sequence',
    # Extrapolator
    'first_order_extrapolation',
    'nested_extrapolation',
    'validate_level_count',
    'extrapolate_kappa_squared',
    # Corrector
    'rational_correction',
    'quadratic_correction',
    'correct_one_step',
    'correct_two_step',
    'apply_correction',
    # Repair
    'region_fill',
    'replace_invalid',
    'sanitize_raw',
    'repair_corrected',
    'merge_with_raw'
]
