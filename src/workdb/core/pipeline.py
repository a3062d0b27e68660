"""Build orchestration: prepare, lock, build or carry over each work, write the database"""

import posixpath
from dataclasses import dataclass, field
from datetime import datetime, timezone
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Optional

from workdb.config import Settings
from workdb.core.layout import resolve_layout
from workdb.core.media import MediaAnalyzer, MediaFacts, is_url
from workdb.core.models import (
    EMPTY_CELL, AnalyzedWork, BuildMetadata, ContentBlock, LocalizedWorkContent,
    Media, MediaEmbedDeclaration, ParsedWork, WorkMetadata,
)
from workdb.core.parse import parse_file
from workdb.crud.database import (
    advance_build_metadata, build_lock, build_metadata_path, is_stale,
    load_build_metadata, load_database, output_directory, write_build_metadata,
    write_database,
)
from workdb.errors import DatabaseRootError, DescriptionError, LayoutError, MediaAnalysisError
from workdb.reporting import Reporter
from workdb.util.fs import list_work_ids


ALL_WORKS = "*"


@dataclass
class BuildFlags:
    scattered: bool = False
    minified:  bool = False
    no_cache:  bool = False


@dataclass
class BuildContext:
    """State of one build invocation. Previous works are read-only inputs."""
    settings:       Settings
    database_dir:   Path
    output:         str
    flags:          BuildFlags = field(default_factory=BuildFlags)
    previous:       dict[str, AnalyzedWork] = field(default_factory=dict)
    build_metadata: BuildMetadata = field(default_factory=BuildMetadata)
    reporter:       Reporter = field(default_factory=Reporter)
    analyzer:       MediaAnalyzer = field(default_factory=MediaAnalyzer)

    @property
    def lock_path(self) -> Path:
        return output_directory(self.output) / self.settings.lock_filename

    @property
    def metadata_path(self) -> Path:
        return build_metadata_path(self.output, self.settings.build_metadata_file)

    @property
    def description_relpath(self) -> str:
        if self.flags.scattered:
            return posixpath.join(self.settings.scattered_mode_folder, self.settings.description_filename)
        return self.settings.description_filename

    def media_root(self, work_id: str) -> Path:
        """Directory media sources of a work are relative to."""
        root = self.database_dir / work_id
        return root / self.settings.scattered_mode_folder if self.flags.scattered else root

    def media_path(self, source: str) -> str:
        """Media path relative to the work directory."""
        if self.flags.scattered:
            return posixpath.normpath(posixpath.join(self.settings.scattered_mode_folder, source))
        return posixpath.normpath(source)


def prepare_build(
    database_dir: Path,
    output: str,
    settings: Optional[Settings] = None,
    flags: Optional[BuildFlags] = None,
    reporter: Optional[Reporter] = None,
    analyzer: Optional[MediaAnalyzer] = None,
    ) -> BuildContext:
    """Load previous state and create output directories. Does not take the lock."""
    settings = settings or Settings()
    reporter = reporter or Reporter()
    ctx = BuildContext(
        settings=settings,
        database_dir=Path(database_dir),
        output=output,
        flags=flags or BuildFlags(),
        reporter=reporter,
        analyzer=analyzer or MediaAnalyzer(extract_colors=settings.extract_colors),
    )
    for directory in {output_directory(output), ctx.metadata_path.parent}:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DatabaseRootError(f"while creating output directory {directory}: {e}") from e

    ctx.previous = load_database(output, reporter)
    ctx.build_metadata = load_build_metadata(ctx.metadata_path, reporter)
    if ctx.build_metadata.previous_build_date is None:
        reporter.info("No previous build recorded; every work is considered changed.")
    return ctx


def _is_unchanged(ctx: BuildContext, work_id: str, previous: AnalyzedWork) -> bool:
    """Whether neither the description nor any local media of a work changed since the last build."""
    work_dir = ctx.database_dir / work_id
    if is_stale(work_dir / ctx.description_relpath, ctx.build_metadata):
        return False
    for content in previous.localized.values():
        for block in content.blocks:
            if isinstance(block, Media) and not block.online and is_stale(work_dir / block.path, ctx.build_metadata):
                return False
    return True


def _media_block(declaration: MediaEmbedDeclaration, path: str, facts: MediaFacts) -> Media:
    return Media(
        id=declaration.id,
        anchor=declaration.anchor,
        alt=declaration.alt,
        title=declaration.title,
        source=declaration.source,
        path=path,
        content_type=facts.content_type,
        size=facts.size,
        dimensions=facts.dimensions,
        duration=facts.duration,
        has_sound=facts.has_sound,
        colors=facts.colors,
        attributes=declaration.attributes,
    )


def analyze_media(
    ctx: BuildContext,
    work_id: str,
    parsed: ParsedWork,
    previous: Optional[AnalyzedWork] = None,
    ) -> dict[str, dict[str, Media]]:
    """Analyze every media embed, keyed by language then block ID.

    A file referenced several times is analyzed once; each embed keeps its
    own alt, title and attributes. Facts of unchanged files are reused from
    the previous build unless caching is disabled. Failures are logged and
    the embed is left out.
    """
    media_root = ctx.media_root(work_id)
    analyzed: dict[Path, MediaFacts] = {}
    result: dict[str, dict[str, Media]] = {}

    for language, localized in parsed.localized.items():
        result[language] = {}
        for declaration in localized.media:
            if is_url(declaration.source):
                result[language][declaration.id] = Media(
                    **declaration.model_dump(exclude={"type"}), online=True,
                )
                continue

            path = (media_root / declaration.source).resolve()
            relative = ctx.media_path(declaration.source)
            facts = analyzed.get(path)
            if facts is None:
                cached = previous.find_media(relative) if previous and not ctx.flags.no_cache else None
                if cached is not None and not is_stale(path, ctx.build_metadata):
                    ctx.reporter.debug("Reusing analysis of %s", path)
                    facts = MediaFacts.from_media(cached)
                else:
                    ctx.reporter.debug("Analyzing %s", path)
                    try:
                        facts = ctx.analyzer.analyze(path)
                    except MediaAnalysisError as e:
                        ctx.reporter.error("%s (work %s)", e, work_id)
                        continue
                analyzed[path] = facts
            result[language][declaration.id] = _media_block(declaration, relative, facts)

    return result


def fill_colors(metadata: WorkMetadata, media: dict[str, dict[str, Media]]) -> WorkMetadata:
    """Take the palette from the thumbnail (or else the first colored media) if none is declared."""
    if not metadata.colors.empty():
        return metadata
    candidates = [m for by_id in media.values() for m in by_id.values()]
    if metadata.thumbnail:
        chosen = next((m for m in candidates if m.source == metadata.thumbnail), None)
    else:
        chosen = next((m for m in candidates if not m.colors.empty()), None)
    if chosen is None or chosen.colors.empty():
        return metadata
    return metadata.model_copy(update={"colors": chosen.colors})


def build_work(ctx: BuildContext, work_id: str) -> AnalyzedWork:
    """Parse, analyze and assemble one work, or carry it over if unchanged.

    Raises DescriptionError or LayoutError; the caller skips the work.
    """
    previous = ctx.previous.get(work_id)
    if previous is not None and not ctx.flags.no_cache and _is_unchanged(ctx, work_id, previous):
        ctx.reporter.debug("Work %s unchanged since the last build", work_id)
        return previous

    parsed = parse_file(
        ctx.database_dir / work_id / ctx.description_relpath,
        reporter=ctx.reporter,
        parser_config=ctx.settings.parser_config,
        default_language=ctx.settings.default_language,
        id_length=ctx.settings.id_length,
    )
    media = analyze_media(ctx, work_id, parsed, previous)
    metadata = fill_colors(parsed.metadata, media) if ctx.settings.extract_colors else parsed.metadata

    localized: dict[str, LocalizedWorkContent] = {}
    for language, description in parsed.localized.items():
        layout = resolve_layout(language, description, parsed.metadata.layout)
        available: dict[str, ContentBlock] = {
            **{p.id: p for p in description.paragraphs},
            **media[language],
            **{link.id: link for link in description.links},
        }
        blocks: list[ContentBlock] = []
        missing: set[str] = set()
        for block_id in description.order:
            block = available.get(block_id)
            if block is None:
                ctx.reporter.warning("Could not find block with ID %s in %s (%s)", block_id, work_id, language)
                missing.add(block_id)
                continue
            blocks.append(block)
        if missing:
            layout = [[EMPTY_CELL if cell in missing else cell for cell in row] for row in layout]

        localized[language] = LocalizedWorkContent(
            layout=layout,
            blocks=blocks,
            title=description.title,
            footnotes=description.footnotes,
        )

    return AnalyzedWork(id=work_id, metadata=metadata, localized=localized)


def build_some(
    include: str,
    database_dir: Path,
    output: str,
    settings: Optional[Settings] = None,
    flags: Optional[BuildFlags] = None,
    reporter: Optional[Reporter] = None,
    analyzer: Optional[MediaAnalyzer] = None,
    ) -> dict[str, AnalyzedWork]:
    """Build works whose ID matches include; carry over the others from the previous database.

    Raises BuildInProgressError if another build holds the lock and
    DatabaseRootError if the works directory cannot be read. Returns the
    works that were written.
    """
    ctx = prepare_build(database_dir, output, settings, flags, reporter, analyzer)
    started_at = datetime.now(timezone.utc)

    with build_lock(ctx.lock_path):
        try:
            work_ids = list_work_ids(ctx.database_dir, ctx.description_relpath)
        except OSError as e:
            raise DatabaseRootError(f"could not read works directory {ctx.database_dir}: {e}") from e

        works: dict[str, AnalyzedWork] = {}
        ctx.reporter.start(len(work_ids))
        for work_id in work_ids:
            if include == ALL_WORKS or fnmatchcase(work_id, include):
                try:
                    works[work_id] = build_work(ctx, work_id)
                except (DescriptionError, LayoutError) as e:
                    ctx.reporter.error("while building %s: %s", work_id, e)
            elif work_id in ctx.previous:
                works[work_id] = ctx.previous[work_id]
            else:
                ctx.reporter.info(
                    "Skipped building of work %s, as it is neither included in %s nor formerly present in %s.",
                    work_id, include, output,
                )
            ctx.reporter.advance(work_id)

        write_database(works, output, ctx.flags.minified)
        ctx.build_metadata = advance_build_metadata(ctx.build_metadata, started_at)
        write_build_metadata(ctx.metadata_path, ctx.build_metadata)

    return works


def build_all(database_dir: Path, output: str, **options) -> dict[str, AnalyzedWork]:
    return build_some(ALL_WORKS, database_dir, output, **options)
