# -*- coding: utf-8 -*-
"""
pytest 配置和共享 fixtures
"""

import pytest
import numpy as np
from PIL import Image


def _speckle(rng, shape, scale):
    """完全发展散斑：强度服从指数分布"""
    return rng.exponential(scale=scale, size=shape)


@pytest.fixture
def rng():
    return np.random.default_rng(20220601)


@pytest.fixture
def speckle_frames(rng):
    """部分饱和的8位散斑序列（约18%像素饱和）"""
    frames = []
    for _ in range(5):
        intensity = _speckle(rng, (48, 48), 150.0)
        frames.append(np.clip(np.round(intensity), 0, 255).astype(np.uint8))
    return frames


@pytest.fixture
def unsaturated_frames():
    """均匀且未饱和的序列"""
    return [np.full((32, 32), 100, dtype=np.uint8) for _ in range(3)]


@pytest.fixture
def saturated_frames():
    """全部像素达到饱和上限的序列"""
    return [np.full((32, 32), 255, dtype=np.uint8) for _ in range(3)]


@pytest.fixture
def uint16_frames(rng):
    """部分饱和的16位散斑序列"""
    frames = []
    for _ in range(3):
        intensity = _speckle(rng, (40, 40), 30000.0)
        frames.append(np.clip(np.round(intensity), 0, 65535).astype(np.uint16))
    return frames


@pytest.fixture
def temp_image_dir(speckle_frames, tmp_path):
    """创建临时图像序列目录（文件名需要自然排序）"""
    image_dir = tmp_path / 'frames'
    image_dir.mkdir()
    for i, frame in enumerate(speckle_frames):
        Image.fromarray(frame).save(str(image_dir / f'frame_{i + 1}.png'))
    return str(image_dir)


@pytest.fixture
def temp_output_dir(tmp_path):
    """创建临时输出目录"""
    output_dir = tmp_path / 'output'
    output_dir.mkdir()
    return str(output_dir)


@pytest.fixture
def dark_edge_frames(rng):
    """左侧为亮散斑（未饱和），其余区域严格为0的16位序列"""
    frames = []
    for _ in range(3):
        frame = np.zeros((64, 64), dtype=np.uint16)
        intensity = _speckle(rng, (64, 20), 15000.0)
        frame[:, :20] = np.clip(np.round(intensity), 1, 50000).astype(np.uint16)
        frames.append(frame)
    return frames
