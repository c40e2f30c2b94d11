from content_node.config.settings import Settings
from content_node.storage.base import BaseContentReferenceHandler
from content_node.tempfiles.provider import TempFileProvider
from content_node.transform.base import BaseTransformerWorker
from content_node.transform.ffmpeg_worker import FfmpegTransformerWorker
from content_node.transform.hash_worker import HashWorker


class TransformerWorkerFactory:
    """Creates the transformer worker selected in settings."""

    WORKERS = ("ffmpeg", "hash")

    @classmethod
    def create(
        cls,
        settings: Settings,
        handler: BaseContentReferenceHandler,
        temp_files: TempFileProvider,
    ) -> BaseTransformerWorker:
        name = settings.transformer.lower()
        if name == "ffmpeg":
            return FfmpegTransformerWorker(
                handler,
                temp_files,
                ffmpeg_path=settings.ffmpeg_path,
                ffprobe_path=settings.ffprobe_path,
            )
        if name == "hash":
            return HashWorker(handler, default_algorithm=settings.hash_algorithm)
        raise ValueError(
            f"Unknown transformer '{name}'. Choose from: {list(cls.WORKERS)}"
        )
