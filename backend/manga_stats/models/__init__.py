from manga_stats.models.comic import Comic
from manga_stats.models.chapter import Chapter
from manga_stats.models.view_event import ChapterView, ComicView
from manga_stats.models.rating import Rating
from manga_stats.models.view_statistics import ViewStatisticsSnapshot

__all__ = [
    "Comic",
    "Chapter",
    "ComicView",
    "ChapterView",
    "Rating",
    "ViewStatisticsSnapshot",
]
