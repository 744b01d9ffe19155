from typing import Dict, List, Tuple

from nls_dev.message_bundle import BundledMetaDataHeader, SingleMetaDataFile, normalize_path

BundledMetaDataFile = Dict[str, Dict[str, List]]


class MetaDataBundler:
    """
    Accumulates per-file metadata records into one project-wide bundle.

    One instance belongs to one pipeline run. The header is fixed at
    construction; every added record is assumed to belong to the same
    extension and output directory.
    """

    def __init__(self, id: str, out_dir: str):
        self.header = BundledMetaDataHeader(id=id, out_dir=out_dir)
        self._content: BundledMetaDataFile = {}

    def add(self, entry: SingleMetaDataFile) -> None:
        self._content[normalize_path(entry.file_path)] = {
            'messages': entry.messages,
            'keys': entry.keys,
        }

    def bundle(self) -> Tuple[BundledMetaDataHeader, BundledMetaDataFile]:
        """
        Return the header and the accumulated content.

        Content is ordered by module path so the result does not depend on
        the order in which records arrived.
        """
        content = {module: self._content[module] for module in sorted(self._content)}
        return self.header, content
