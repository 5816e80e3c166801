# -*- coding: utf-8 -*-
"""
配置文件 - 所有默认参数集中管理
"""

import numpy as np

# ========================
# 窗口配置
# ========================
WINDOW_SIZE = 7                # NxN 空间窗口大小
BOUNDARY_MODE = 'reflect'      # 边界延拓方式（均值/标准差/饱和率共用）

# ========================
# 饱和配置
# ========================
SATURATION_LEVEL = 255         # 饱和上限（uint8: 255, uint16: 65535, float: 1.0）
ITERATIONS = 1                 # 校正迭代次数（1=单步, 2=两步嵌套外推）

# ========================
# 阈值层级（满量程比例）
# ========================
ONE_STEP_LEVELS = (1.0,)
TWO_STEP_LEVELS = (1.0, 0.8, 0.6)

# ========================
# 经验校正系数（低对比度范围标定）
# ========================
C1 = -0.8
Q1 = -0.85
Q2 = 0.25
INVALID_FLOOR = 0.01           # 低于此值视为发散，需要修复
EPS = float(np.finfo(np.float64).eps)

# ========================
# 文件配置
# ========================
IMAGE_PATTERNS = ['*.png', '*.PNG', '*.tif', '*.TIF', '*.tiff', '*.TIFF']
OUTPUT_DIR = 'output'
K_RAW_NAME = 'k_raw'
K_CORRECTED_NAME = 'k_corrected'
R_SATURATION_NAME = 'r_saturation'

# ========================
# 1/K² 预览配置
# ========================
PREVIEW_VMIN = 0.0
PREVIEW_VMAX = 3.0
