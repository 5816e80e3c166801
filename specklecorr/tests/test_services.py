# -*- coding: utf-8 -*-
"""
服务层测试
"""

import os

import pytest
import numpy as np

from specklecorr.services import OverExposureCorrectionService, correct_overexposure
from specklecorr.data.models import WindowConfig, CorrectionConfig, CorrectionModel
from specklecorr.data.io import save_correction_config, load_contrast_map
from specklecorr.errors import ConfigurationError


def _assert_valid(result):
    """输出图有限、非负、尺寸一致"""
    assert result.k_corrected.shape == result.k_raw.shape == result.r_saturation.shape
    assert np.all(np.isfinite(result.k_corrected))
    assert np.all(result.k_corrected >= 0)
    assert np.all(np.isfinite(result.k_raw))
    assert np.all((result.r_saturation >= 0) & (result.r_saturation <= 1))


class TestServiceInit:
    """OverExposureCorrectionService 初始化测试"""

    def test_defaults(self):
        service = OverExposureCorrectionService()

        assert service.model is CorrectionModel.ONE_STEP
        assert service.levels == (1.0,)
        assert service.saturation_level is None

    def test_two_step_levels(self):
        service = OverExposureCorrectionService(iterations=2)

        assert service.model is CorrectionModel.TWO_STEP
        assert service.levels == (1.0, 0.8, 0.6)

    @pytest.mark.parametrize('kwargs', [
        {'iterations': 3},
        {'iterations': 0},
        {'window_config': WindowConfig(size=0)},
        {'window_config': WindowConfig(size=5, boundary_mode='zero')},
        {'saturation_level': -1},
        {'max_workers': 0}
    ])
    def test_invalid_config(self, kwargs):
        with pytest.raises(ConfigurationError):
            OverExposureCorrectionService(**kwargs)

    def test_set_iterations(self):
        service = OverExposureCorrectionService()
        service.set_iterations(2)
        assert service.model is CorrectionModel.TWO_STEP

        with pytest.raises(ConfigurationError):
            service.set_iterations(5)

    def test_load_correction_config(self, tmp_path):
        """测试加载校正系数"""
        path = save_correction_config(CorrectionConfig(c1=-0.5, two_step_levels=(1.0, 0.7)),
                                      tmp_path / 'corr.json')
        service = OverExposureCorrectionService(iterations=2)
        service.load_correction_config(path)

        info = service.get_config_info()
        assert info['c1'] == -0.5
        assert info['levels'] == [1.0, 0.7]

    @pytest.mark.parametrize('levels', [(1.0,), (1.0, 0.9, 0.8, 0.7), (0.8, 0.6), (1.0, 1.2)])
    def test_invalid_two_step_levels(self, levels):
        """测试两步层级在构造时校验（处理任何帧之前）"""
        with pytest.raises(ConfigurationError):
            OverExposureCorrectionService(correction_config=CorrectionConfig(two_step_levels=levels))

    def test_set_correction_config(self):
        """测试设置校正系数并校验层级"""
        service = OverExposureCorrectionService(iterations=2)
        service.set_correction_config(CorrectionConfig(q1=-0.9, two_step_levels=(1.0, 0.75)))

        assert service.levels == (1.0, 0.75)
        assert service.get_config_info()['q1'] == -0.9

        with pytest.raises(ConfigurationError, match="2或3"):
            service.set_correction_config(CorrectionConfig(two_step_levels=(1.0, 0.9, 0.8, 0.7)))
        assert service.levels == (1.0, 0.75)

    def test_load_invalid_level_count(self, tmp_path):
        """测试加载层级数量非法的配置文件时立即报错"""
        path = save_correction_config(CorrectionConfig(two_step_levels=(1.0,)), tmp_path / 'bad.json')
        service = OverExposureCorrectionService(iterations=2)

        with pytest.raises(ConfigurationError, match="2或3"):
            service.load_correction_config(path)
        assert service.levels == (1.0, 0.8, 0.6)


class TestCorrectFrames:
    """correct_frames 测试"""

    @pytest.mark.parametrize('iterations', [1, 2])
    def test_output_valid(self, speckle_frames, iterations):
        """测试部分饱和序列的输出有限非负"""
        service = OverExposureCorrectionService(
            window_config=WindowConfig(size=5), saturation_level=255, iterations=iterations
        )
        result = service.correct_frames(speckle_frames)

        _assert_valid(result)
        assert result.frame_count == len(speckle_frames)
        assert result.saturated_pixels > 0

    @pytest.mark.parametrize('iterations', [1, 2])
    def test_unsaturated_sequence(self, unsaturated_frames, iterations):
        """测试未饱和序列：饱和率为0，校正值等于原始值"""
        service = OverExposureCorrectionService(
            window_config=WindowConfig(size=3), saturation_level=255, iterations=iterations
        )
        result = service.correct_frames(unsaturated_frames)

        np.testing.assert_array_equal(result.r_saturation, 0.0)
        np.testing.assert_array_equal(result.k_corrected, result.k_raw)

    @pytest.mark.parametrize('iterations', [1, 2])
    def test_fully_saturated_sequence(self, saturated_frames, iterations):
        """测试全部饱和：饱和率为1，输出无 NaN/Inf"""
        service = OverExposureCorrectionService(
            window_config=WindowConfig(size=3), saturation_level=255, iterations=iterations
        )
        result = service.correct_frames(saturated_frames)

        np.testing.assert_array_equal(result.r_saturation, 1.0)
        _assert_valid(result)

    def test_flat_frame_at_ceiling(self):
        """测试单帧平坦饱和图像（255, N=3）"""
        frame = np.full((16, 16), 255, dtype=np.uint8)
        result = correct_overexposure([frame], window_size=3, saturation_level=255)
        k_raw, k_corrected, r = result.as_tuple()

        np.testing.assert_array_equal(r, 1.0)
        np.testing.assert_allclose(k_raw, 0.0, atol=1e-6)
        assert np.all(np.isfinite(k_corrected)) and np.all(k_corrected >= 0)
        assert result.repair.isolated_filled == frame.size

    def test_dark_sequence(self):
        """测试全黑序列（局部均值为0）不输出NaN"""
        frames = [np.zeros((10, 10), dtype=np.uint8)] * 2
        result = correct_overexposure(frames, window_size=3, saturation_level=255)

        _assert_valid(result)
        np.testing.assert_array_equal(result.k_raw, 0.0)

    @pytest.mark.parametrize('iterations', [1, 2])
    def test_zero_region_next_to_bright_block(self, dark_edge_frames, iterations):
        """测试亮区旁的全零区域：输出有限、非负且不超过单窗口对比度上限"""
        result = correct_overexposure(dark_edge_frames, window_size=7,
                                      saturation_level=65535, iterations=iterations)
        bound = np.sqrt(7 * 7 - 1) + 1e-6

        _assert_valid(result)
        np.testing.assert_array_equal(result.r_saturation, 0.0)
        assert np.all(result.k_raw >= 0) and np.all(result.k_raw <= bound)
        assert np.all(result.k_corrected <= bound)
        np.testing.assert_array_equal(result.k_corrected, result.k_raw)
        assert result.repair.raw_sanitized > 0

    def test_unsaturated_pixels_keep_raw(self, speckle_frames):
        """测试饱和率为0的像素保留原始对比度"""
        result = correct_overexposure(speckle_frames[:1], window_size=3, saturation_level=255)
        zero = result.r_saturation == 0

        assert np.any(zero)
        np.testing.assert_array_equal(result.k_corrected[zero], result.k_raw[zero])

    def test_permutation_invariance(self, speckle_frames):
        """测试帧顺序不影响饱和率"""
        forward = correct_overexposure(speckle_frames, window_size=5, saturation_level=255)
        shuffled = [speckle_frames[i] for i in (3, 0, 4, 2, 1)]
        backward = correct_overexposure(shuffled, window_size=5, saturation_level=255)

        np.testing.assert_allclose(forward.r_saturation, backward.r_saturation, atol=1e-12)

    def test_parallel_matches_sequential(self, speckle_frames):
        """测试并行处理与顺序处理一致"""
        sequential = OverExposureCorrectionService(
            window_config=WindowConfig(size=5), saturation_level=255, iterations=2
        ).correct_frames(speckle_frames)
        parallel = OverExposureCorrectionService(
            window_config=WindowConfig(size=5), saturation_level=255, iterations=2, max_workers=3
        ).correct_frames(speckle_frames)

        np.testing.assert_allclose(parallel.r_saturation, sequential.r_saturation, atol=1e-12)
        np.testing.assert_allclose(parallel.k_raw, sequential.k_raw, rtol=1e-9)
        assert parallel.frame_count == sequential.frame_count

    def test_saturation_level_inferred(self, uint16_frames):
        """测试按数据类型推断饱和上限"""
        result = correct_overexposure(uint16_frames, window_size=5)

        assert result.saturation_level == 65535
        _assert_valid(result)

    def test_progress_callback(self, speckle_frames):
        """测试进度回调"""
        calls = []
        service = OverExposureCorrectionService(saturation_level=255)
        service.correct_frames(speckle_frames, progress_callback=lambda c, t, m: calls.append((c, t)))

        assert calls[-1] == (len(speckle_frames), len(speckle_frames))
        assert len(calls) == len(speckle_frames)

    def test_empty_sequence(self):
        with pytest.raises(ConfigurationError, match="序列为空"):
            OverExposureCorrectionService(saturation_level=255).correct_frames([])

    def test_mismatched_frames(self):
        frames = [np.zeros((8, 8)), np.zeros((8, 10))]
        with pytest.raises(ConfigurationError, match="尺寸不一致"):
            OverExposureCorrectionService(saturation_level=255).correct_frames(frames)

    def test_stats(self, speckle_frames):
        """测试统计信息"""
        result = correct_overexposure(speckle_frames, window_size=5, saturation_level=255, iterations=2)
        stats = result.stats

        assert stats['model'] == 'TWO_STEP'
        assert stats['levels'] == [1.0, 0.8, 0.6]
        assert 0 <= stats['saturated_rate'] <= 100
        assert 'region_filled' in stats


class TestCorrectFiles:
    """文件与目录处理测试"""

    def test_correct_files_matches_frames(self, temp_image_dir, speckle_frames):
        """测试文件读取与内存帧结果一致"""
        from specklecorr.data.io import list_image_files

        service = OverExposureCorrectionService(window_config=WindowConfig(size=5))
        from_files = service.correct_files(list_image_files(temp_image_dir))
        from_frames = service.correct_frames(speckle_frames)

        assert from_files.saturation_level == 255
        np.testing.assert_allclose(from_files.k_corrected, from_frames.k_corrected)

    def test_first_file_decoded_once(self, temp_image_dir, monkeypatch):
        """测试推断饱和上限时读取的首帧参与扫描，每个文件只解码一次"""
        from specklecorr.data.io import list_image_files
        from specklecorr.services import correction_service

        calls = []
        original = correction_service.read_speckle_image

        def counting_reader(path):
            calls.append(path)
            return original(path)

        monkeypatch.setattr(correction_service, 'read_speckle_image', counting_reader)
        files = list_image_files(temp_image_dir)
        result = OverExposureCorrectionService(window_config=WindowConfig(size=5)).correct_files(files)

        assert sorted(calls) == sorted(files)
        assert result.saturation_level == 255
        assert result.frame_count == len(files)

    def test_correct_directory(self, temp_image_dir, temp_output_dir):
        """测试目录处理并保存结果"""
        service = OverExposureCorrectionService(saturation_level=255, iterations=2)
        batch = service.correct_directory(temp_image_dir, temp_output_dir, save_preview=True)

        assert len(batch.input_files) == 5
        for key in ('k_raw', 'k_corrected', 'r_saturation', 'k_corrected_preview'):
            assert os.path.exists(batch.saved_paths[key])

        saved = load_contrast_map(batch.saved_paths['k_corrected'])
        np.testing.assert_array_equal(saved, batch.result.k_corrected)

    def test_correct_directory_tiff(self, temp_image_dir, temp_output_dir):
        service = OverExposureCorrectionService(saturation_level=255)
        batch = service.correct_directory(temp_image_dir, temp_output_dir, save_format='tiff')

        assert batch.saved_paths['r_saturation'].endswith('.tiff')

    def test_missing_directory(self, tmp_path):
        service = OverExposureCorrectionService()
        with pytest.raises(FileNotFoundError, match="未找到图像文件"):
            service.correct_directory(str(tmp_path / 'missing'), str(tmp_path / 'out'))
