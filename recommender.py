#!/usr/bin/env python

import logging
import os
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Union

import iogo
from maven import MAVEN_CENTRAL, Environment, Model, ModelError, Repository

_logger = logging.getLogger(__name__)


# -- Classes --

class BomSource:
    """
    One BOM input: the document bytes, a name for diagnostics,
    and whether the input looks like a BOM document at all.
    Inputs backed by a file are read only when their bytes are first needed.
    """

    def __init__(
            self,
            identity: str,
            data: Optional[bytes] = None,
            is_bom: bool = True,
            path: Optional[Path] = None,
    ):
        self.identity = identity
        self.is_bom = is_bom
        self.path = path
        self._data = data

    def __str__(self):
        return self.identity

    @property
    def data(self) -> bytes:
        if self._data is None:
            self._data = iogo.binary(self.path) if self.path else b""
        return self._data

    @staticmethod
    def from_path(path: Union[Path, str]) -> "BomSource":
        # Only files whose names end in "pom" count as BOMs.
        path = Path(path)
        return BomSource(str(path), is_bom=path.name.endswith("pom"), path=path)


class Recommender:
    """
    Recommends dependency versions from an ordered sequence of Maven BOMs.

    Each BOM is built into an effective model (parents, imports and properties
    resolved against the environment's repositories), and the managed versions
    of all models are merged into one G:A -> version map. When two BOMs manage
    the same G:A, the later one wins. The map is built on first use and then
    reused for the lifetime of this object.
    """

    def __init__(self, sources: Iterable[BomSource], env: Optional[Environment] = None, workers: int = 1):
        """
        :param sources: The BOM inputs, in order of increasing precedence.
        :param env: Maven environment with repositories and context properties.
        :param workers:
            Number of BOMs to build concurrently. Results are always merged
            in source order, so this affects speed only.
        """
        self.sources: List[BomSource] = list(sources)
        self.env: Environment = env or Environment()
        self.workers = workers
        # One "uses ..." line per BOM that contributed recommendations.
        self.messages: List[str] = []
        self._recommendations: Optional[Dict[str, str]] = None

    def version(self, groupId: str, artifactId: str) -> Optional[str]:
        """
        Get the recommended version of a G:A, or None if no BOM manages it.
        """
        return self.recommendations().get(f"{groupId}:{artifactId}")

    def recommendations(self) -> Dict[str, str]:
        """
        Get the full G:A -> version map, building it on the first call.
        Any failure building a BOM is raised, and nothing is memoized.
        """
        if self._recommendations is None:
            recommendations: Dict[str, str] = {}
            messages: List[str] = []
            for model in self._models(self._boms()):
                message = f"uses {model.id}"
                _logger.info(message)
                messages.append(message)
                recommendations.update(model.versions)
            self.messages = messages
            self._recommendations = recommendations
        return self._recommendations

    def _boms(self) -> List[BomSource]:
        boms = []
        for source in self.sources:
            if not source.is_bom:
                # NB: Processing stops at the first non-BOM input; later inputs are ignored too.
                _logger.debug(f"Stopping at non-BOM input {source}")
                break
            boms.append(source)
        return boms

    def _models(self, boms: Sequence[BomSource]) -> Iterator[Model]:
        if self.workers <= 1 or len(boms) <= 1:
            for bom in boms:
                yield self._model(bom)
            return
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            yield from executor.map(self._model, boms)

    def _model(self, bom: BomSource) -> Model:
        _logger.debug(f"Building effective model of {bom}")
        return self.env.model(bom.data, bom.identity)


# -- Main --

def main(args: Optional[List[str]] = None) -> int:
    """
    Print the recommendations of the BOM files given as arguments.

    Arguments of the form -Dkey=value are context properties;
    arguments containing :// are repository URLs, searched in order
    (credentials may be given as user:password@host);
    all other arguments are BOM files.
    """
    args = sys.argv[1:] if args is None else args

    debug = bool(os.environ.get("DEBUG", None))
    log_format = "[%(levelname)s] %(message)s"
    log_level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(format=log_format, level=log_level)

    properties = {}
    for arg in args:
        if not arg.startswith("-D"): continue
        key, _, value = arg[2:].partition("=")
        properties[key] = value
    urls = [arg for arg in args if "://" in arg and not arg.startswith("-D")]
    paths = [arg for arg in args if "://" not in arg and not arg.startswith("-D")]

    repositories = [Repository.parse(url) for url in urls] or [Repository(MAVEN_CENTRAL)]
    env = Environment(repositories=repositories, properties=properties)

    try:
        recommender = Recommender([BomSource.from_path(p) for p in paths], env)
        recommendations = recommender.recommendations()
    except (ModelError, OSError) as e:
        _logger.error(e)
        return 1

    for key in sorted(recommendations):
        print(f"{key} = {recommendations[key]}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
