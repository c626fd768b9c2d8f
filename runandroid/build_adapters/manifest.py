"""
Manifest reader for generated AndroidManifest.xml files.

Only two identifiers are needed to launch the app: the package name and the
fully qualified launch activity. Both are read with a small attribute
tokenizer rather than a full XML parse, because merged manifests from older
Gradle plugins are not always well formed.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Union

from runandroid.build_adapters.interface import MalformedConfigError, ManifestInfo
from runandroid.build_adapters.parser import CharCursor

DEFAULT_ACTIVITY_CLASS = 'MainActivity'

PACKAGE_ATTRIBUTE = 'package'
NAME_ATTRIBUTE = 'android:name'

# Characters allowed in an attribute name, including the namespace colon
_NAME_CHARS = frozenset(
    'abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_-.:'
)


@dataclass
class Attribute:
    """A single name="value" pair."""
    name: str
    value: str


def iter_attributes(content: str) -> Iterator[Attribute]:
    """
    Yield every `name="value"` attribute in document order.

    Values never span lines. Unterminated values are dropped.
    """
    cursor = CharCursor(content)
    while not cursor.at_end():
        if cursor.peek() != '=':
            cursor.advance()
            continue

        name_end = cursor.pos
        name_start = name_end
        while name_start > 0 and content[name_start - 1] in _NAME_CHARS:
            name_start -= 1
        cursor.advance()

        if cursor.peek() != '"':
            continue
        cursor.advance()

        value_start = cursor.pos
        while not cursor.at_end() and cursor.peek() not in ('"', '\n'):
            cursor.advance()
        if cursor.peek() != '"':
            continue

        value = content[value_start:cursor.pos]
        cursor.advance()
        if name_start < name_end:
            yield Attribute(content[name_start:name_end], value)


def find_package_name(content: str) -> Optional[str]:
    """Return the value of the first package="..." attribute."""
    for attr in iter_attributes(content):
        if attr.name == PACKAGE_ATTRIBUTE and attr.value:
            return attr.value
    return None


def find_activity_name(content: str, activity_class: str = DEFAULT_ACTIVITY_CLASS) -> Optional[str]:
    """
    Return the first android:name value that names `activity_class`.

    The value must end with '.<activity_class>' and have something before
    the dot, e.g. 'com.example.MainActivity'.
    """
    suffix = f".{activity_class}"
    for attr in iter_attributes(content):
        if attr.name != NAME_ATTRIBUTE:
            continue
        if attr.value.endswith(suffix) and len(attr.value) > len(suffix):
            return attr.value
    return None


def parse_manifest(
    content: str,
    activity_class: str = DEFAULT_ACTIVITY_CLASS,
    path: Optional[Union[str, Path]] = None
) -> ManifestInfo:
    """
    Extract the package and launch activity from manifest text.

    Raises:
        MalformedConfigError: If either identifier is missing.
    """
    package_name = find_package_name(content)
    if package_name is None:
        raise MalformedConfigError('no package="..." attribute in manifest', path)

    activity_name = find_activity_name(content, activity_class)
    if activity_name is None:
        raise MalformedConfigError(
            f'no android:name="...{activity_class}" attribute in manifest', path
        )

    return ManifestInfo(package_name=package_name, activity_name=activity_name)


def read_manifest(
    path: Union[str, Path],
    activity_class: str = DEFAULT_ACTIVITY_CLASS
) -> ManifestInfo:
    """Read a manifest file and extract its launch identifiers."""
    content = Path(path).read_text(encoding='utf-8')
    return parse_manifest(content, activity_class, path)
