"""Load reference files from disk as knowledge documents."""

from pathlib import Path

from ..knowledge import IKnowledgeStore
from ..logging_config import get_logger
from ..models import Document

logger = get_logger(__name__)


class DocumentLoader:
    """Reads text files under a root directory into Documents.

    Document ids are paths relative to the root, so re-ingesting the same
    tree replaces documents instead of duplicating them.
    """

    def __init__(self, root: str | Path, source_id: str | None = None):
        self._root = Path(root)
        if not self._root.is_dir():
            raise ValueError(f"Not a directory: {self._root}")
        self._source_id = source_id or self._root.name

    def load(self, pattern: str = "**/*") -> list[Document]:
        """Read every text file matching the glob pattern."""
        documents = []
        for path in sorted(self._root.glob(pattern)):
            if not path.is_file():
                continue
            try:
                content = path.read_text(encoding="utf-8")
            except UnicodeDecodeError:
                logger.warning("Skipping non-text file %s", path)
                continue
            if not content.strip():
                continue

            documents.append(
                Document(
                    id=path.relative_to(self._root).as_posix(),
                    source_id=self._source_id,
                    content=content,
                )
            )

        logger.debug("Loaded %s documents from %s", len(documents), self._root)
        return documents

    async def ingest(self, knowledge: IKnowledgeStore, pattern: str = "**/*") -> int:
        """Load matching files and add them to the knowledge store."""
        documents = self.load(pattern)
        await knowledge.add_documents(documents)
        return len(documents)
