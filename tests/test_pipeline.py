"""
End-to-end tests of the per-file interpolation pipeline.
"""

import numpy as np
import pytest

from lidar_idw.acceleration.progress import PROGRESS_LABEL, request_cancel
from lidar_idw.interpolation.idw import NO_DATA
from lidar_idw.interpolation.pipeline import IDWInterpolator, run_host
from lidar_idw.preprocessing.loader import PointCloudLoader
from lidar_idw.utils.config import ClassExclusionConfig, OutputConfig, RunConfig
from lidar_idw.utils.export import data_path_for, read_header, read_whitebox_surface


class CancellingLoader(PointCloudLoader):
    """Loader that raises the cancellation flag once a file has been read."""

    def read_records(self, file_path):
        records = super().read_records(file_path)
        request_cancel()
        return records


class TestSingleFile:
    def test_three_point_surface(self, three_point_las, host):
        summary = IDWInterpolator(RunConfig(), host, n_workers=2).run([three_point_las])

        assert summary.ok
        output = three_point_las.with_name("three IDW.dep")
        assert summary.results[0].output_path == str(output)
        assert host.results == [str(output)]
        assert host.progress == [(PROGRESS_LABEL, 100)]
        assert host.completed == 1
        assert host.feedback == []

        surface = read_whitebox_surface(output)
        assert surface.shape == (2, 2)
        assert surface[0, 0] == 30.0
        assert surface[1, 0] == 10.0
        assert surface[1, 1] == 20.0
        assert surface[0, 1] == pytest.approx(22.0)

        header = read_header(output)
        assert float(header["West"]) == -0.5
        assert float(header["North"]) == 1.5

    def test_equidistant_cell_with_cutoff(self, las_factory, host):
        # Cell (0, 1) is centred on x=1, y=1: 1 from the 20 and 30 points, sqrt(2) from the 10 point
        path = las_factory(
            "square.las",
            [0.0, 1.0, 0.0, 2.0, 2.0],
            [0.0, 0.0, 1.0, 2.0, 3.0],
            [10.0, 20.0, 30.0, 99.0, 99.0],
            classification=[2, 2, 2, 7, 7],
        )
        config = RunConfig(weight=1.0, max_distance=1.2, exclude=ClassExclusionConfig(low_point=True))

        summary = IDWInterpolator(config, host).run([path])

        surface = read_whitebox_surface(summary.results[0].output_path)
        assert surface.shape == (2, 2)
        assert surface[0, 1] == pytest.approx(25.0)

    def test_all_points_excluded(self, three_point_las, host):
        config = RunConfig(exclude=ClassExclusionConfig(ground=True))

        summary = IDWInterpolator(config, host).run([three_point_las])

        assert summary.ok
        output = summary.results[0].output_path
        header = read_header(output)
        assert (header["Rows"], header["Cols"]) == ("1", "1")
        assert read_whitebox_surface(output).tolist() == [[NO_DATA]]

    def test_rerun_overwrites_identically(self, three_point_las, host):
        interpolator = IDWInterpolator(RunConfig(resolution=0.25), host)

        first = interpolator.run([three_point_las]).results[0].output_path
        body = data_path_for(first).read_bytes()
        second = interpolator.run([three_point_las]).results[0].output_path

        assert first == second
        assert data_path_for(second).read_bytes() == body

    def test_return_policy_and_withheld(self, las_factory, host):
        path = las_factory(
            "returns.las",
            [0.0, 0.0, 1.0],
            [0.0, 0.0, 0.0],
            [5.0, 50.0, 7.0],
            return_number=[1, 2, 1],
            number_of_returns=[2, 2, 1],
            withheld=[False, False, True],
        )
        config = RunConfig(return_policy="last return", suffix="last")

        summary = IDWInterpolator(config, host).run([path])

        assert summary.results[0].n_points == 1
        surface = read_whitebox_surface(path.with_name("returns last.dep"))
        assert surface.tolist() == [[50.0]]

    def test_geotiff_copy(self, three_point_las, host):
        rasterio = pytest.importorskip("rasterio")
        interpolator = IDWInterpolator(RunConfig(), host, output=OutputConfig(write_geotiff=True))

        result = interpolator.run([three_point_las]).results[0]

        with rasterio.open(result.geotiff_path) as src:
            np.testing.assert_array_equal(src.read(1), read_whitebox_surface(result.output_path))


class TestManyFiles:
    def test_only_largest_file_is_displayed(self, las_factory, host):
        small = las_factory("small.las", [0.0, 1.0], [0.0, 0.0], [1.0, 2.0])
        large = las_factory("large.las", np.arange(20.0), np.zeros(20), np.arange(20.0))

        summary = IDWInterpolator(RunConfig(), host, n_workers=4).run([small, large])

        assert summary.ok
        assert [r.input_path for r in summary.results] == [str(large), str(small)]
        assert host.results == [str(large.with_name("large IDW.dep"))]
        assert small.with_name("small IDW.dep").exists()
        assert host.progress == [(PROGRESS_LABEL, 50), (PROGRESS_LABEL, 100)]
        assert host.completed == 1

    def test_failed_file_does_not_stop_others(self, three_point_las, tmp_path, host):
        missing = tmp_path / "missing.las"

        summary = IDWInterpolator(RunConfig(), host, n_workers=2).run([missing, three_point_las])

        assert not summary.ok
        assert list(summary.errors) == [str(missing)]
        assert summary.results[0].ok
        assert len(host.feedback) == 1
        assert "missing.las" in host.feedback[0]
        assert host.progress[-1] == (PROGRESS_LABEL, 100)
        assert host.completed == 1

    def test_rgb_without_colour_fails_file(self, las_factory, host):
        path = las_factory("plain.las", [0.0, 1.0], [0.0, 0.0], [1.0, 2.0], point_format=1)

        summary = IDWInterpolator(RunConfig(attribute="rgb"), host).run([path])

        assert not summary.ok
        assert "no colour" in host.feedback[0]
        assert host.results == []

    def test_rgb_surface(self, las_factory, host):
        rgb = np.array([[255, 0, 0], [0, 255, 0], [0, 0, 255]])
        path = las_factory("colour.las", [0.0, 1.0, 0.0], [0.0, 0.0, 1.0], [0.0, 0.0, 0.0], rgb=rgb)

        summary = IDWInterpolator(RunConfig(attribute="rgb"), host).run([path])

        surface = read_whitebox_surface(summary.results[0].output_path)
        word = int(surface[1, 0]) & 0xFFFFFFFF
        assert word == 0xFF0000FF
        assert read_header(summary.results[0].output_path)["Data Scale"] == "rgb"


class TestRunLifecycle:
    def test_cancellation_writes_no_output(self, three_point_las, host):
        interpolator = IDWInterpolator(RunConfig(), host, loader=CancellingLoader())

        summary = interpolator.run([three_point_las])

        assert summary.cancelled
        assert not three_point_las.with_name("three IDW.dep").exists()
        assert host.feedback == ["Operation cancelled."]
        assert host.progress == [(PROGRESS_LABEL, 0)]
        assert host.results == []
        assert host.completed == 1

    def test_stale_cancel_flag_is_cleared(self, three_point_las, host):
        request_cancel()
        summary = IDWInterpolator(RunConfig(), host).run([three_point_las])
        assert summary.ok

    def test_no_input_files(self, host):
        summary = IDWInterpolator(RunConfig(), host).run([])

        assert summary.error is not None
        assert host.feedback == ["One or more of the input parameters have not been set properly."]
        assert host.completed == 1

    def test_elapsed_time_recorded(self, three_point_las, host):
        summary = IDWInterpolator(RunConfig(), host).run([three_point_las])
        assert summary.elapsed_s >= 0.0


class TestRunHost:
    def test_argument_vector(self, three_point_las, host):
        args = [str(three_point_las), "grid", "z (elevation)", "all points", "2", "not specified", "8", "0.5"]
        args += ["false"] * 10

        summary = run_host(args, host, n_workers=1)

        assert summary.ok
        assert host.results == [str(three_point_las.with_name("three grid.dep"))]
        assert read_header(host.results[0])["Rows"] == "3"

    def test_missing_parameters(self, host):
        summary = run_host([], host)

        assert summary.error == "Plugin parameters have not been set."
        assert host.feedback == ["Plugin parameters have not been set."]
        assert host.completed == 1
        assert host.progress == []
