"""Tests for per-job working directories."""

import pytest
from PIL import Image

from tierlist_video.exceptions import ResourceAllocationError
from tierlist_video.render.pipeline import RenderJob
from tierlist_video.render.ranking import RankingDocument
from tierlist_video.render.workspace import RenderWorkspace


@pytest.fixture
def job() -> RenderJob:
    return RenderJob.create(RankingDocument(), [])


class TestRenderWorkspace:
    """Test creation and cleanup."""

    def test_creates_private_tree(self, tmp_path, job):
        with RenderWorkspace(job, root=tmp_path) as workspace:
            assert workspace.path.parent == tmp_path
            assert workspace.path.name.startswith(f"tierlist_render_{job.id}_")
            assert workspace.frames_dir.is_dir()
            assert workspace.audio_dir.is_dir()
            assert workspace.output_dir.is_dir()

        assert not workspace.path.exists()

    def test_default_root_is_system_temp(self, job):
        import tempfile
        from pathlib import Path

        with RenderWorkspace(job) as workspace:
            assert workspace.path.parent == Path(tempfile.gettempdir())

    def test_cleanup_on_error_clears_cache(self, tmp_path, job):
        job.image_cache.put("ref", Image.new("RGBA", (1, 1)))

        with pytest.raises(RuntimeError):
            with RenderWorkspace(job, root=tmp_path) as workspace:
                (workspace.frames_dir / "frame_000000.png").write_bytes(b"x")
                raise RuntimeError("boom")

        assert not workspace.path.exists()
        assert len(job.image_cache) == 0

    def test_concurrent_jobs_get_separate_directories(self, tmp_path):
        first = RenderJob.create(RankingDocument(), [])
        second = RenderJob.create(RankingDocument(), [])

        assert first.id != second.id
        with RenderWorkspace(first, root=tmp_path) as a, RenderWorkspace(second, root=tmp_path) as b:
            assert a.path != b.path

    def test_allocation_failure(self, tmp_path, job):
        not_a_dir = tmp_path / "file"
        not_a_dir.write_text("x")

        with pytest.raises(ResourceAllocationError):
            RenderWorkspace(job, root=not_a_dir / "nested").open()

    def test_paths_require_open_workspace(self, job):
        with pytest.raises(RuntimeError):
            _ = RenderWorkspace(job).frames_dir
