"""Turns user supplied filters and positional tokens into the set of torrents an operation targets.

Positional tokens are either info hashes or state filters (anything starting with "_", e.g. "_active",
"_done", "_seeding"). They are parsed once into HashSelector / StateSelector values and the rest of the
module only ever matches on those.
"""
import logging

from ptkeeper_logging import BraceAdapter
from utils import unique

logger = BraceAdapter(logging.getLogger(__name__))

STATE_FILTER_PREFIX = '_'
ALL = '_all'


class InvalidSelectorException(ValueError):
    pass


class HashSelector:
    def __init__(self, info_hash):
        self.info_hash = info_hash.lower()

    def __eq__(self, other):
        return isinstance(other, HashSelector) and self.info_hash == other.info_hash

    def __hash__(self):
        return hash(('hash', self.info_hash))

    def __repr__(self):
        return 'HashSelector({!r})'.format(self.info_hash)


class StateSelector:
    def __init__(self, state_filter):
        self.state_filter = state_filter

    @property
    def is_all(self):
        return self.state_filter == ALL

    def matches(self, torrent):
        return match_state_filter(torrent, self.state_filter)

    def __eq__(self, other):
        return isinstance(other, StateSelector) and self.state_filter == other.state_filter

    def __hash__(self):
        return hash(('state', self.state_filter))

    def __repr__(self):
        return 'StateSelector({!r})'.format(self.state_filter)


def parse_selector(token):
    token = token.strip()
    if not token or token == STATE_FILTER_PREFIX:
        raise InvalidSelectorException('{!r} is neither an info hash nor a state filter.'.format(token))
    if token.startswith(STATE_FILTER_PREFIX):
        return StateSelector(token)
    return HashSelector(token)


def parse_selectors(tokens):
    return [parse_selector(token) for token in tokens]


def match_state_filter(torrent, state_filter):
    """Both an empty filter and "_all" match everything.

    "_active" means moving at least 1 KiB/s either way, "_done" means completed or seeding. Any other
    "_x" is the same as plain "x", an exact state comparison.
    """
    return torrent.match_state_filter(state_filter)


def _filter_torrents(torrents, category, tag, filter):
    return [torrent for torrent in torrents
            if torrent.match_category(category)
            and torrent.match_tag(tag)
            and torrent.match_filter(filter)]


def _selects_everything(category, tag, filter, selectors):
    if any(isinstance(selector, StateSelector) and selector.is_all for selector in selectors):
        return True
    return not category and not tag and not filter and not selectors


def query_torrents(client, category='', tag='', filter='', *tokens):
    """Torrents of the client matching the criteria, in a stable order and without duplicates.

    tag is a comma-separated list matched case-insensitively (any of them), "none" meaning untagged.
    category "none" means uncategorized. Hash tokens are fetched directly and are not subject to the
    category/tag/filter criteria.
    """
    selectors = parse_selectors(tokens)
    if _selects_everything(category, tag, filter, selectors):
        return client.get_torrents()

    torrents = _filter_torrents(client.get_torrents(), category, tag, filter)
    if not selectors:
        return torrents

    result = []
    for selector in selectors:
        if isinstance(selector, StateSelector):
            result.extend(torrent for torrent in torrents if selector.matches(torrent))
        else:
            result.append(client.get_torrent(selector.info_hash))
    result = unique(result, key=lambda torrent: torrent.info_hash)
    logger.debug('Selected {} torrents from {}', len(result), client.name)
    return result


def select_torrents(client, category='', tag='', filter='', *tokens):
    """Info hashes of the matching torrents, or None when every torrent of the client is selected.

    An empty list means nothing matched. Hash tokens are taken as they are, without checking that the
    torrent exists.
    """
    selectors = parse_selectors(tokens)
    if _selects_everything(category, tag, filter, selectors):
        return None

    no_condition = not category and not tag and not filter
    if no_condition and all(isinstance(selector, HashSelector) for selector in selectors):
        logger.debug('Taking {} info hashes as given', len(selectors))
        return unique(selector.info_hash for selector in selectors)

    torrents = _filter_torrents(client.get_torrents(), category, tag, filter)
    if not selectors:
        return [torrent.info_hash for torrent in torrents]

    info_hashes = []
    for selector in selectors:
        if isinstance(selector, StateSelector):
            info_hashes.extend(torrent.info_hash for torrent in torrents if selector.matches(torrent))
        else:
            info_hashes.append(selector.info_hash)
    return unique(info_hashes)


def resolve_info_hashes(client, info_hashes):
    """Expands the None "all torrents" marker returned by select_torrents."""
    if info_hashes is None:
        return [torrent.info_hash for torrent in client.get_torrents()]
    return list(info_hashes)
