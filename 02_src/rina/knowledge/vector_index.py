"""Read-only nearest-neighbour search over stored embeddings."""

from typing import Awaitable, Callable, Sequence

import numpy as np
from numpy.typing import NDArray

from ..errors import EmbeddingError
from ..llm import IEmbedder
from ..logging_config import get_logger
from ..models import SearchResult

logger = get_logger(__name__)

# (id, content, embedding bytes)
VectorRow = tuple[str, str, bytes]
RowLoader = Callable[[], Awaitable[list[VectorRow]]]


def to_blob(vector: Sequence[float]) -> bytes:
    """Serialize a vector for storage."""
    return np.asarray(vector, dtype=np.float32).tobytes()


def from_blob(blob: bytes) -> NDArray[np.float32]:
    """Deserialize a stored vector."""
    return np.frombuffer(blob, dtype=np.float32)


def rank(
    query_vector: NDArray[np.float32],
    rows: list[VectorRow],
    top_n: int,
) -> list[SearchResult]:
    """Rank rows by cosine similarity to the query, best first.

    Rows whose dimension differs from the query (vectors written by another
    embedding model) are skipped with a warning.
    """
    if top_n <= 0:
        return []

    dims = query_vector.shape[0]
    vectors = [from_blob(row[2]) for row in rows]
    keep = [i for i, vector in enumerate(vectors) if vector.shape[0] == dims]
    if len(keep) < len(rows):
        logger.warning(
            "Skipping %s stored vectors that do not have %s dims",
            len(rows) - len(keep),
            dims,
        )
    if not keep:
        return []

    rows = [rows[i] for i in keep]
    matrix = np.vstack([vectors[i] for i in keep])

    # Normalize for cosine similarity
    query_norm = query_vector / (np.linalg.norm(query_vector) + 1e-10)
    norms = np.linalg.norm(matrix, axis=1, keepdims=True) + 1e-10
    similarities = np.dot(matrix / norms, query_norm)

    # Stable sort keeps insertion order among equal scores
    indices = np.argsort(-similarities, kind="stable")[:top_n]

    return [
        SearchResult(
            id=rows[i][0],
            content=rows[i][1],
            score=float(similarities[i]),
        )
        for i in indices
    ]


class VectorIndex:
    """Nearest-neighbour view over one embedding table.

    Holds no vectors itself: rows are loaded through the owning store on
    every query, so the view always reflects committed data.
    """

    def __init__(self, embedder: IEmbedder, load_rows: RowLoader):
        self._embedder = embedder
        self._load_rows = load_rows

    async def top_n(self, query: str, n: int) -> list[SearchResult]:
        """Return the n stored items closest to the query text."""
        try:
            vectors = await self._embedder.embed([query])
        except Exception as e:
            raise EmbeddingError(f"Failed to embed query: {e}") from e

        query_vector = np.asarray(vectors[0], dtype=np.float32)
        rows = await self._load_rows()
        return rank(query_vector, rows, n)
