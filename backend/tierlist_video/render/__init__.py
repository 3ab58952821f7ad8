from tierlist_video.render.audio_normalizer import AudioNormalizer
from tierlist_video.render.encoder import EncoderOrchestrator
from tierlist_video.render.frame_renderer import Renderer, Scene
from tierlist_video.render.pipeline import RenderJob, RenderPipeline, RenderResult
from tierlist_video.render.timeline import plan_timeline

__all__ = [
    "RenderPipeline",
    "RenderJob",
    "RenderResult",
    "Renderer",
    "Scene",
    "AudioNormalizer",
    "EncoderOrchestrator",
    "plan_timeline",
]
