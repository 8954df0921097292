"""STL file loading and saving around the binary codec."""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

import numpy as np
from tqdm import tqdm

from stlmetrics.core.cancellation import CancellationToken
from stlmetrics.core.config import CodecConfig
from stlmetrics.core.exceptions import STLLoadError, STLSaveError
from stlmetrics.model.mesh import MeshModel
from stlmetrics.processing import binary_codec
from stlmetrics.utils import CacheManager

logger = logging.getLogger(__name__)


class MeshLoader:
    """Reads binary STL files into meshes and writes meshes back out."""

    # Maximum file size in bytes (1GB)
    MAX_FILE_SIZE = 1024 * 1024 * 1024

    # Files above this size get a progress bar while reading
    PROGRESS_THRESHOLD = 16 * 1024 * 1024

    CHUNK_SIZE = 1024 * 1024

    def __init__(
        self,
        show_progress: bool = True,
        cache_manager: Optional[CacheManager] = None,
        max_file_size: Optional[int] = None,
        codec_config: Optional[CodecConfig] = None,
    ):
        """Initialize mesh loader.

        Args:
            show_progress: Whether to show progress bars for large files
            cache_manager: Optional cache manager for storing decoded meshes
            max_file_size: Largest accepted file in bytes
            codec_config: Codec limits passed to the decoder
        """
        self.show_progress = show_progress
        self.cache_manager = cache_manager
        self.max_file_size = max_file_size or self.MAX_FILE_SIZE
        self.codec_config = codec_config or CodecConfig()

    def load(
        self,
        file_path: Union[str, Path],
        cancel_token: Optional[CancellationToken] = None,
    ) -> MeshModel:
        """Load a binary STL file.

        Args:
            file_path: Path to STL file
            cancel_token: Optional token checked while decoding

        Returns:
            Decoded MeshModel with ``last_modified`` set from the file

        Raises:
            STLLoadError: If the file cannot be read
            FormatError: If the content is not a well-formed binary STL
            CancelledError: If decoding is cancelled
        """
        file_path = Path(file_path)
        self._validate_file(file_path)

        data = self._read_bytes(file_path)
        mtime = datetime.fromtimestamp(file_path.stat().st_mtime, tz=timezone.utc)

        cache_key = None
        if self.cache_manager and self.cache_manager.enabled:
            cache_key = self.cache_manager.content_key(
                data,
                params={"max_triangles": self.codec_config.max_triangles},
                prefix="stl",
            )
            cached = self.cache_manager.get_mesh(cache_key)
            if cached is not None:
                logger.debug(f"Loaded {file_path.name} from cache")
                # Entries are shared by every file with the same bytes
                return cached.with_metadata(filename=file_path.name, last_modified=mtime)

        mesh = binary_codec.decode(
            data,
            filename=file_path.name,
            cancel_token=cancel_token,
            config=self.codec_config,
        )
        mesh = mesh.with_metadata(last_modified=mtime)

        if cache_key:
            self.cache_manager.cache_mesh(cache_key, mesh)

        logger.info(f"Loaded {file_path.name}: {mesh.triangle_count:,} triangles")
        return mesh

    def _validate_file(self, file_path: Path) -> None:
        """Validate file before loading.

        Raises:
            STLLoadError: If file validation fails
        """
        if not file_path.exists():
            raise STLLoadError(file_path, "File does not exist")

        if not file_path.is_file():
            raise STLLoadError(file_path, "Path is not a file")

        file_size = file_path.stat().st_size

        if file_size == 0:
            raise STLLoadError(file_path, "File is empty")

        if file_size > self.max_file_size:
            raise STLLoadError(
                file_path,
                f"File too large ({file_size / 1024**2:.1f}MB > "
                f"{self.max_file_size / 1024**2:.1f}MB limit)",
            )

        if file_path.suffix.lower() != ".stl":
            raise STLLoadError(
                file_path,
                f"Unsupported file extension: {file_path.suffix}",
            )

    def _read_bytes(self, file_path: Path) -> bytes:
        """Read the whole file, with a progress bar for large files."""
        file_size = file_path.stat().st_size
        chunks = []
        try:
            with open(file_path, "rb") as f, tqdm(
                total=file_size,
                desc=f"Reading {file_path.name}",
                disable=not self.show_progress or file_size < self.PROGRESS_THRESHOLD,
                unit="B",
                unit_scale=True,
            ) as pbar:
                while chunk := f.read(self.CHUNK_SIZE):
                    chunks.append(chunk)
                    pbar.update(len(chunk))
        except OSError as e:
            raise STLLoadError(file_path, str(e)) from e
        return b"".join(chunks)

    def save(
        self,
        mesh: MeshModel,
        file_path: Union[str, Path],
        cancel_token: Optional[CancellationToken] = None,
    ) -> Path:
        """Write a mesh as binary STL.

        Args:
            mesh: Mesh to write
            file_path: Destination path (parent directories are created)
            cancel_token: Optional token checked while encoding

        Returns:
            Path of the written file

        Raises:
            STLSaveError: If the file cannot be written
        """
        file_path = Path(file_path)
        data = binary_codec.encode(mesh, cancel_token=cancel_token, config=self.codec_config)

        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_bytes(data)
        except OSError as e:
            raise STLSaveError(file_path, str(e)) from e

        logger.info(f"Saved {mesh.triangle_count:,} triangles to {file_path}")
        return file_path

    def get_mesh_info(self, mesh: MeshModel) -> dict:
        """Get information about the mesh.

        Topology figures (watertightness, Euler number, center of mass) come
        from trimesh after merging duplicate vertices.

        Args:
            mesh: MeshModel instance

        Returns:
            Dictionary with mesh information
        """
        bbox = mesh.bounding_box
        info = {
            "filename": mesh.metadata.filename,
            "header": mesh.metadata.header,
            "triangles": mesh.triangle_count,
            "file_size": mesh.metadata.file_size_formatted,
            "surface_area": mesh.surface_area,
            "degenerate_triangles": mesh.metadata.degenerate_triangle_count,
            "bounds": {
                "min": bbox.min.to_list(),
                "max": bbox.max.to_list(),
            },
            "extents": bbox.size.to_list(),
            "quality": mesh.metadata.quality.name,
        }

        if mesh.triangle_count == 0 or not mesh.is_valid:
            return info

        tm = mesh.to_trimesh(process=True)
        info.update(
            {
                "vertices": len(tm.vertices),
                "edges": len(tm.edges_unique),
                "watertight": bool(tm.is_watertight),
                "volume": float(tm.volume) if tm.is_watertight else None,
                "center_mass": tm.center_mass.tolist() if tm.is_watertight else None,
                "euler_number": int(tm.euler_number),
            }
        )

        areas = tm.area_faces
        if len(areas) > 0:
            info["face_areas"] = {
                "min": float(np.min(areas)),
                "max": float(np.max(areas)),
                "mean": float(np.mean(areas)),
                "std": float(np.std(areas)),
            }

        return info


def load_stl(
    file_path: Union[str, Path],
    show_progress: bool = True,
    cache_manager: Optional[CacheManager] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> MeshModel:
    """Convenience function to load an STL file.

    Args:
        file_path: Path to STL file
        show_progress: Whether to show progress bar
        cache_manager: Optional cache manager for caching decoded meshes
        cancel_token: Optional cancellation token

    Returns:
        Decoded MeshModel

    Raises:
        STLLoadError: If file cannot be loaded
        FormatError: If the content is malformed
    """
    loader = MeshLoader(show_progress=show_progress, cache_manager=cache_manager)
    return loader.load(file_path, cancel_token=cancel_token)


def save_stl(mesh: MeshModel, file_path: Union[str, Path]) -> Path:
    """Convenience function to write a mesh as binary STL."""
    return MeshLoader(show_progress=False).save(mesh, file_path)
