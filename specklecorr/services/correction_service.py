# -*- coding: utf-8 -*-
"""
过曝校正服务
提供图像序列过曝校正的完整流程
"""

import os
import logging
import threading
import numpy as np
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from .. import config
from ..data.models import (
    WindowConfig,
    CorrectionConfig,
    CorrectionModel,
    CorrectionResult,
    BatchProcessResult,
    SweepResult
)
from ..data.io import (
    read_speckle_image,
    list_image_files,
    load_correction_config,
    save_contrast_map,
    save_inverse_k2_preview
)
from ..data.converters import default_saturation_level
from ..errors import ConfigurationError
from ..core.window_stats import validate_window_size, validate_boundary_mode
from ..core.saturation import threshold_levels, validate_saturation_level
from ..core.extrapolator import validate_level_count
from ..core.contrast import SweepAccumulator
from ..core.corrector import apply_correction

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]


class OverExposureCorrectionService:
    """
    过曝校正服务

    逐帧计算各阈值层级的对比度和饱和率并在序列上平均，
    再外推/校正/修复得到 (K_raw, K_corrected, R_saturationratio)
    """

    def __init__(self,
                 window_config: Optional[WindowConfig] = None,
                 saturation_level: Optional[float] = None,
                 iterations: int = config.ITERATIONS,
                 correction_config: Optional[CorrectionConfig] = None,
                 max_workers: int = 1):
        """
        初始化校正服务

        参数:
            window_config: 窗口配置
            saturation_level: 饱和上限（None 时按首帧数据类型推断）
            iterations: 校正迭代次数（1=单步, 2=两步）
            correction_config: 校正系数配置
            max_workers: 并行线程数（1 为顺序处理）

        抛出:
            ConfigurationError: 参数非法
        """
        self.window_config = window_config or WindowConfig()
        validate_window_size(self.window_config.size)
        validate_boundary_mode(self.window_config.boundary_mode)

        self.saturation_level = (
            None if saturation_level is None else validate_saturation_level(saturation_level)
        )

        try:
            self._model = CorrectionModel.from_iterations(iterations)
        except ValueError as e:
            raise ConfigurationError(str(e))

        self.set_correction_config(correction_config or CorrectionConfig())

        if isinstance(max_workers, bool) or not isinstance(max_workers, int) or max_workers < 1:
            raise ConfigurationError(f"并行线程数必须为正整数，当前为{max_workers!r}")
        self.max_workers = max_workers

    # ==================== 配置 ====================

    @property
    def model(self) -> CorrectionModel:
        """当前校正模型"""
        return self._model

    @property
    def levels(self) -> tuple:
        """当前模型使用的阈值层级"""
        return self.correction_config.levels_for(self._model)

    def set_iterations(self, iterations: int) -> None:
        """设置迭代次数"""
        try:
            self._model = CorrectionModel.from_iterations(iterations)
        except ValueError as e:
            raise ConfigurationError(str(e))

    def set_correction_config(self, correction_config: CorrectionConfig) -> None:
        """
        设置校正系数配置

        阈值层级在处理任何帧之前校验

        抛出:
            ConfigurationError: 层级非法或两步层级数量不是 2 或 3
        """
        threshold_levels(1.0, correction_config.one_step_levels)
        threshold_levels(1.0, correction_config.two_step_levels)
        validate_level_count(len(correction_config.two_step_levels))
        self.correction_config = correction_config

    def load_correction_config(self, config_path: str) -> CorrectionConfig:
        """
        加载校正系数配置

        参数:
            config_path: JSON 配置文件路径

        返回:
            加载的配置
        """
        self.set_correction_config(load_correction_config(config_path))
        return self.correction_config

    def get_config_info(self) -> Dict[str, Any]:
        """获取当前配置信息"""
        return {
            'window_size': self.window_config.size,
            'boundary_mode': self.window_config.boundary_mode,
            'saturation_level': self.saturation_level,
            'model': self._model.name,
            'levels': list(self.levels),
            'c1': self.correction_config.c1,
            'q1': self.correction_config.q1,
            'q2': self.correction_config.q2,
            'invalid_floor': self.correction_config.invalid_floor,
            'max_workers': self.max_workers
        }

    # ==================== 校正 ====================

    def correct_frames(self,
                       frames: Iterable[np.ndarray],
                       progress_callback: Optional[ProgressCallback] = None
                       ) -> CorrectionResult:
        """
        校正内存中的帧序列

        参数:
            frames: 二维帧的可迭代对象
            progress_callback: 进度回调函数 (current, total, message)

        返回:
            CorrectionResult 对象

        抛出:
            ConfigurationError: 序列为空、帧非二维或尺寸不一致
        """
        items = list(frames)
        return self._run(items, np.asarray, progress_callback)

    def correct_files(self,
                      image_paths: Sequence[str],
                      progress_callback: Optional[ProgressCallback] = None
                      ) -> CorrectionResult:
        """
        校正图像文件序列

        参数:
            image_paths: 图像文件路径列表
            progress_callback: 进度回调函数 (current, total, message)

        返回:
            CorrectionResult 对象
        """
        return self._run(list(image_paths), read_speckle_image, progress_callback)

    def correct_directory(self,
                          input_dir: str,
                          output_dir: str,
                          save_format: str = 'npy',
                          save_preview: bool = False,
                          progress_callback: Optional[ProgressCallback] = None
                          ) -> BatchProcessResult:
        """
        校正目录中的图像序列并保存三个输出图

        参数:
            input_dir: 输入目录
            output_dir: 输出目录
            save_format: 'npy' 或 'tiff'
            save_preview: 是否额外保存 1/K² 预览PNG
            progress_callback: 进度回调函数 (current, total, message)

        返回:
            BatchProcessResult 对象

        抛出:
            FileNotFoundError: 目录不存在或无图像文件
        """
        if save_format not in ('npy', 'tiff'):
            raise ConfigurationError(f"不支持的保存格式: {save_format}")

        image_files = list_image_files(input_dir)
        if not image_files:
            raise FileNotFoundError(f"未找到图像文件: {input_dir}")

        result = self.correct_files(image_files, progress_callback)

        os.makedirs(output_dir, exist_ok=True)
        saved = {}
        outputs = {
            config.K_RAW_NAME: result.k_raw,
            config.K_CORRECTED_NAME: result.k_corrected,
            config.R_SATURATION_NAME: result.r_saturation
        }
        for name, array in outputs.items():
            path = os.path.join(output_dir, f"{name}.{save_format}")
            saved[name] = save_contrast_map(array, path)

        if save_preview:
            for name in (config.K_RAW_NAME, config.K_CORRECTED_NAME):
                path = os.path.join(output_dir, f"{name}_inv_k2.png")
                saved[f"{name}_preview"] = save_inverse_k2_preview(outputs[name], path)

        logger.info("结果已保存到 %s", output_dir)

        return BatchProcessResult(
            input_files=image_files,
            result=result,
            saved_paths=saved
        )

    # ==================== 内部流程 ====================

    def _run(self,
             items: List[Any],
             loader: Callable[[Any], np.ndarray],
             progress_callback: Optional[ProgressCallback]) -> CorrectionResult:
        """扫描 -> 校正"""
        if not items:
            raise ConfigurationError("图像序列为空")

        # 首帧只解码一次，既用于推断饱和上限也参与扫描
        first_frame = loader(items[0])
        saturation_level = self._resolve_saturation_level(first_frame)

        def load(index: int) -> np.ndarray:
            return first_frame if index == 0 else loader(items[index])

        levels = self.levels

        logger.info(
            "过曝校正: %d 帧, N=%d, 饱和上限=%g, 模型=%s, 阈值层级=%s",
            len(items), self.window_config.size, saturation_level,
            self._model.name, list(levels)
        )

        if self.max_workers > 1 and len(items) > 1:
            sweep = self._sweep_parallel(items, load, saturation_level, levels, progress_callback)
        else:
            sweep = self._sweep_sequential(items, load, saturation_level, levels, progress_callback)

        for fraction, r_map in zip(sweep.levels, sweep.r_maps):
            logger.debug("阈值 %.2f: 平均饱和率 %.4f", fraction, float(np.mean(r_map)))

        k_raw, k_corrected, repair_stats = apply_correction(
            sweep, self._model, self.correction_config
        )

        result = CorrectionResult(
            k_raw=k_raw,
            k_corrected=k_corrected,
            r_saturation=sweep.r_primary,
            frame_count=sweep.frame_count,
            model=self._model,
            levels=sweep.levels,
            window_size=self.window_config.size,
            saturation_level=saturation_level,
            repair=repair_stats
        )
        logger.info(
            "校正完成: 饱和像素 %d, NaN替换 %d, Inf替换 %d, 区域填充 %d",
            result.saturated_pixels, repair_stats.nan_replaced,
            repair_stats.inf_replaced, repair_stats.region_filled
        )
        return result

    def _resolve_saturation_level(self, first_frame: np.ndarray) -> float:
        """未指定饱和上限时按首帧数据类型推断"""
        if self.saturation_level is not None:
            return self.saturation_level
        level = default_saturation_level(np.asarray(first_frame).dtype)
        logger.info("未指定饱和上限，按数据类型推断为 %g", level)
        return level

    def _new_accumulator(self, saturation_level: float, levels: tuple) -> SweepAccumulator:
        return SweepAccumulator(
            levels,
            saturation_level,
            self.window_config.size,
            self.window_config.boundary_mode
        )

    def _sweep_sequential(self, items, load, saturation_level, levels,
                          progress_callback) -> SweepResult:
        accumulator = self._new_accumulator(saturation_level, levels)
        total = len(items)
        for i, item in enumerate(items):
            accumulator.add_frame(load(i))
            if progress_callback:
                progress_callback(i + 1, total, f"处理: {_describe(item, i)}")
        return accumulator.result()

    def _sweep_parallel(self, items, load, saturation_level, levels,
                        progress_callback) -> SweepResult:
        """
        并行扫描：每个线程持有独立的部分累加器，结束后合并

        求和顺序不同，结果与顺序处理在浮点误差范围内一致
        """
        workers = min(self.max_workers, len(items))
        chunks = [range(i, len(items), workers) for i in range(workers)]
        total = len(items)
        lock = threading.Lock()
        done = [0]

        def run(chunk):
            accumulator = self._new_accumulator(saturation_level, levels)
            for index in chunk:
                accumulator.add_frame(load(index))
                if progress_callback:
                    with lock:
                        done[0] += 1
                        progress_callback(done[0], total, f"处理: {_describe(items[index], index)}")
            return accumulator

        with ThreadPoolExecutor(max_workers=workers) as executor:
            partials = list(executor.map(run, chunks))

        merged = partials[0]
        for partial in partials[1:]:
            merged.merge(partial)
        return merged.result()


def _describe(item: Any, index: int) -> str:
    """进度消息中的帧描述"""
    if isinstance(item, (str, os.PathLike)):
        return os.path.basename(str(item))
    return f"帧 {index + 1}"


def correct_overexposure(frames: Iterable[np.ndarray],
                         window_size: int = config.WINDOW_SIZE,
                         saturation_level: Optional[float] = None,
                         iterations: int = config.ITERATIONS,
                         correction_config: Optional[CorrectionConfig] = None
                         ) -> CorrectionResult:
    """
    一次调用完成过曝校正

    参数:
        frames: 二维帧的可迭代对象
        window_size: 窗口边长 N
        saturation_level: 饱和上限（None 时按数据类型推断）
        iterations: 1=单步, 2=两步
        correction_config: 校正系数配置

    返回:
        CorrectionResult 对象，as_tuple() 得到 (K_raw, K_corrected, R_saturationratio)
    """
    service = OverExposureCorrectionService(
        window_config=WindowConfig(size=window_size),
        saturation_level=saturation_level,
        iterations=iterations,
        correction_config=correction_config
    )
    return service.correct_frames(frames)
