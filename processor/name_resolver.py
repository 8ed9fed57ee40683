"""Resolve student identities from free-text lesson titles."""
import logging
import re
from typing import Dict, Iterable, List

from processor.models import ResolvedName, RosterEntry

logger = logging.getLogger(__name__)


# Titles look like "Taro and Hanako Yamada (Online)"; everything from the
# first parenthesis on is a location/medium tag.
SUFFIX_MARKER = '('

# Kids lessons carry this glyph next to the student name
CHILD_MARKER = '子'

NAME_SEPARATOR_PATTERN = re.compile(r'\s+and\s+', re.IGNORECASE)
TOKEN_SEPARATOR_PATTERN = re.compile(r'\s+')

DEMO_MARKER_PATTERN = re.compile(r'D/L', re.IGNORECASE)
DEMO_FOLDER_SUFFIX = 'DEMO'


def build_roster_map(entries: Iterable[RosterEntry]) -> Dict[str, str]:
    """
    Build a student name to folder key lookup.

    Rows missing either the name or the folder are ignored. When a name
    appears twice the later row wins.

    Args:
        entries: Roster rows in table order

    Returns:
        Dictionary mapping student name to folder key
    """
    roster = {}
    for entry in entries:
        if entry.student_name and entry.folder_key:
            roster[entry.student_name] = entry.folder_key
    return roster


def extract_demo_student_name(title: str) -> str:
    """Return the text preceding the demo marker, e.g. 'John Smith D/L' -> 'John Smith'."""
    return DEMO_MARKER_PATTERN.split(title, maxsplit=1)[0].strip()


class NameResolver:
    """Resolver mapping lesson titles to roster students."""

    def __init__(self, roster: Dict[str, str]):
        """
        Initialize the resolver.

        Args:
            roster: Mapping of full student name to folder key
        """
        self.roster = roster

    @classmethod
    def from_entries(cls, entries: Iterable[RosterEntry]) -> 'NameResolver':
        """Create a resolver from roster rows."""
        return cls(build_roster_map(entries))

    def split_names(self, title: str) -> List[str]:
        """
        Split the name portion of a title into individual name strings.

        Args:
            title: Raw event title

        Returns:
            Non-empty, trimmed name strings in title order
        """
        name_part = title.split(SUFFIX_MARKER)[0].replace(CHILD_MARKER, '')
        names = NAME_SEPARATOR_PATTERN.split(name_part)
        return [name.strip() for name in names if name.strip()]

    def shared_family_name(self, names: List[str]) -> str:
        """
        Return the family name shared by a multi-student title.

        Only the last name string is considered, and only when it has two or
        more tokens: "Taro and Hanako Yamada" shares "Yamada", while
        "Taro Yamada and Hanako" shares nothing.
        """
        if len(names) < 2:
            return ''
        tokens = TOKEN_SEPARATOR_PATTERN.split(names[-1])
        if len(tokens) < 2:
            return ''
        return tokens[-1]

    def resolve(self, title: str) -> List[ResolvedName]:
        """
        Resolve every student named in an event title.

        Args:
            title: Raw event title

        Returns:
            Resolved names in title order. Unmatched names carry an empty
            folder key; duplicates are kept.
        """
        names = self.split_names(title)
        family_name = self.shared_family_name(names)
        is_demo = bool(DEMO_MARKER_PATTERN.search(title))

        resolved = []
        for name in names:
            tokens = TOKEN_SEPARATOR_PATTERN.split(name)
            if len(tokens) > 1 or not family_name:
                full_name = name
            else:
                full_name = f"{tokens[0]} {family_name}"
            full_name = full_name.strip()

            folder_key = self.roster.get(full_name, '')
            if is_demo and not folder_key:
                folder_key = f"{extract_demo_student_name(title)} {DEMO_FOLDER_SUFFIX}"
                logger.info(
                    f"Demo lesson with no roster folder: '{title}' -> '{folder_key}'"
                )
            elif not folder_key:
                logger.debug(f"No roster folder for '{full_name}' in '{title}'")

            resolved.append(ResolvedName(student_name=full_name, folder_key=folder_key))

        return resolved
