# -*- coding: utf-8 -*-
"""
数据层模块
提供数据模型定义、文件读写、数值转换功能
"""

from .models import (
    WindowConfig,
    CorrectionConfig,
    CorrectionModel,
    SweepResult,
    RepairStats,
    CorrectionResult,
    BatchProcessResult
)

from .io import (
    read_speckle_image,
    save_contrast_map,
    load_contrast_map,
    save_inverse_k2_preview,
    list_image_files,
    save_correction_config,
    load_correction_config
)

from .converters import (
    to_float_frame,
    default_saturation_level,
    contrast_to_inverse_k2,
    scale_to_uint8
)

__all__ = [
    # Models
    'WindowConfig',
    'CorrectionConfig',
    'CorrectionModel',
    'SweepResult',
    'RepairStats',
    'CorrectionResult',
    'BatchProcessResult',
    # IO
    'read_speckle_image',
    'save_contrast_map',
    'load_contrast_map',
    'save_inverse_k2_preview',
    'list_image_files',
    'save_correction_config',
    'load_correction_config',
    # Converters
    'to_float_frame',
    'default_saturation_level',
    'contrast_to_inverse_k2',
    'scale_to_uint8'
]
