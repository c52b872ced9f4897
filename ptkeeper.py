#!/usr/bin/env python3
import argparse
import logging
import os
import sys

from clients import PtkeeperException, TorrentOption, is_valid_info_hash
from host import PtkeeperHost
from orchestrator import TorrentOrchestrator
from ptkeeper_logging import BraceAdapter, configure_logging
from selection import query_torrents, InvalidSelectorException
from traffic.event_log import StatLog
from traffic.query import traffic_report, render_traffic_report
from utils import format_bytes, split_csv, unique
from xseed import check_xseed_contents, read_torrent_contents, sort_contents

logger = BraceAdapter(logging.getLogger(__name__))

TORRENT_LINE_FMT = '{:<40}  {:<11}  {:>10}  {:>10}  {:>10}  {}'


def run_config(host, args):
    host.configure(
        stats_enabled=args.stats,
        stats_filename=args.stats_file,
        timezone=args.timezone,
        delete_files_on_remove=args.delete_files,
    )
    for key, value in sorted(host.config.to_dict().items()):
        print('{} = {}'.format(key, value))
    return 0


def run_add_client(host, args):
    host.add_client(args.name, args.client_type, args.host, args.port, args.username, args.password)
    return 0


def run_remove_client(host, args):
    host.remove_client(args.name)
    return 0


def run_clients(host, args):
    for client_config in host.get_client_configs():
        print('{name}  {client_type}  {rpc_host}:{rpc_port}'.format(**client_config.to_dict()))
    return 0


def run_show(host, args):
    client = host.get_client(args.client)
    torrents = query_torrents(client, args.category, args.tag, args.filter, *args.tokens)
    print(TORRENT_LINE_FMT.format('InfoHash', 'State', 'Size', '↓Speed', '↑Speed', 'Name'))
    for torrent in torrents:
        print(TORRENT_LINE_FMT.format(
            torrent.info_hash,
            torrent.state.value,
            format_bytes(torrent.size),
            format_bytes(torrent.download_speed),
            format_bytes(torrent.upload_speed),
            torrent.name,
        ))
    print('// {} torrents, {}'.format(len(torrents), format_bytes(sum(t.size for t in torrents))))
    return 0


def _run_batch(host, args, action):
    orchestrator = TorrentOrchestrator(host.get_client(args.client), host.get_stat_log())
    info_hashes = orchestrator.select(args.category, args.tag, args.filter, args.tokens)
    result = action(orchestrator, info_hashes)
    print(result)
    for error in result.error_manager.errors:
        print('  {}: {}'.format(error.key, error.message))
    return 0 if result.ok else 1


def run_pause(host, args):
    return _run_batch(host, args, lambda o, hashes: o.pause(hashes))


def run_resume(host, args):
    return _run_batch(host, args, lambda o, hashes: o.resume(hashes))


def run_recheck(host, args):
    return _run_batch(host, args, lambda o, hashes: o.recheck(hashes))


def run_reannounce(host, args):
    return _run_batch(host, args, lambda o, hashes: o.reannounce(hashes))


def run_delete(host, args):
    delete_files = host.config.delete_files_on_remove and not args.keep_files
    return _run_batch(host, args, lambda o, hashes: o.delete(hashes, delete_files=delete_files, msg=args.msg))


def run_set_category(host, args):
    return _run_batch(host, args, lambda o, hashes: o.set_category(hashes, args.category_name))


def run_add_tags(host, args):
    return _run_batch(host, args, lambda o, hashes: o.add_tags(hashes, args.tags.split(',')))


def run_remove_tags(host, args):
    return _run_batch(host, args, lambda o, hashes: o.remove_tags(hashes, args.tags.split(',')))


def run_add(host, args):
    client = host.get_client(args.client)
    try:
        with open(args.torrent_file, 'rb') as f:
            torrent_file = f.read()
    except OSError as exc:
        print('Cannot read {}: {}'.format(args.torrent_file, exc.strerror))
        return 1
    option = TorrentOption(
        name=args.rename,
        category=args.category,
        save_path=args.save_path,
        tags=split_csv(args.tags),
        pause=args.paused,
        skip_checking=args.skip_checking,
    )
    client.add_torrent(torrent_file, option)
    print('Added {} to {}'.format(args.torrent_file, client.name))
    return 0


def run_tags(host, args):
    for tag in host.get_client(args.client).get_tags():
        print(tag)
    return 0


def run_create_tags(host, args):
    host.get_client(args.client).create_tags(*split_csv(args.tags))
    return 0


def run_delete_tags(host, args):
    host.get_client(args.client).delete_tags(*split_csv(args.tags))
    return 0


def run_categories(host, args):
    for category in host.get_client(args.client).get_categories():
        print('{}  {}'.format(category.name, category.save_path or '-'))
    return 0


def run_create_category(host, args):
    host.get_client(args.client).make_category(args.category_name, args.save_path or '')
    return 0


def run_delete_categories(host, args):
    host.get_client(args.client).delete_categories(split_csv(args.categories))
    return 0


def run_set_save_path(host, args):
    return _run_batch(host, args, lambda o, hashes: o.set_save_path(hashes, args.save_path))


def run_limit(host, args):
    option = TorrentOption(download_speed_limit=args.download, upload_speed_limit=args.upload)
    return _run_batch(host, args, lambda o, hashes: o.modify(hashes, option))


def run_xseedcheck(host, args):
    if not is_valid_info_hash(args.info_hash):
        print('{} is not an info hash.'.format(args.info_hash))
        return 1
    client = host.get_client(args.client)
    client_contents = sort_contents(client.get_torrent_contents(args.info_hash))
    torrent_contents = read_torrent_contents(args.torrent_file)
    verdict = check_xseed_contents(client_contents, torrent_contents)
    print('{}: {} ({})'.format(args.torrent_file, verdict.name, int(verdict)))
    return 0 if verdict.is_match else 1


def run_stats(host, args):
    if args.stats_file:
        if not os.path.isfile(args.stats_file):
            print('Stats file {} does not exist.'.format(args.stats_file))
            return 1
        with StatLog(args.stats_file) as stat_log:
            return _print_traffic(host, args, stat_log)

    stat_log = host.get_stat_log()
    if stat_log is None:
        print('Statistics are disabled. Enable them with "config --stats".')
        return 1
    return _print_traffic(host, args, stat_log)


def _print_traffic(host, args, stat_log):
    if not stat_log.available:
        print('Stats file {} is unavailable.'.format(stat_log.filename))
        return 1

    clients = unique(name for name in args.clients if name != '_') or [None]
    for i, client_name in enumerate(clients):
        if i > 0:
            print()
        keys, rows = traffic_report(stat_log, client_name, tz=host.timezone)
        for line in render_traffic_report(keys, rows, client_name):
            print(line)
    return 0


def _add_selection_args(parser):
    parser.add_argument('client', help='Client name.')
    parser.add_argument('tokens', nargs='*', help='Info hashes and state filters (_all, _active, _done, _seeding...).')
    parser.add_argument('--category', default='', help='Only torrents of this category ("none": uncategorized).')
    parser.add_argument('--tag', default='', help='Comma-separated tags, any of them ("none": untagged).')
    parser.add_argument('--filter', default='', help='Only torrents whose name contains this text.')


def build_parser():
    parser = argparse.ArgumentParser(description='Manage BitTorrent clients and their traffic statistics.')
    parser.add_argument('--log-level', default='INFO', choices=[
        'CRITICAL', 'ERROR', 'WARNING', 'INFO', 'DEBUG'], help='Logging level.')
    parser.add_argument('--state', required=True, help='Path to config and state directory.')

    subparsers = parser.add_subparsers(help='sub-command help')
    subparsers.required = True

    parser_config = subparsers.add_parser('config')
    parser_config.set_defaults(func=run_config)
    parser_config.add_argument('--stats', dest='stats', action='store_true', default=None)
    parser_config.add_argument('--no-stats', dest='stats', action='store_false')
    parser_config.add_argument('--stats-file', help='Stats log path.')
    parser_config.add_argument('--timezone', help='Timezone used for traffic days, e.g. Asia/Shanghai.')
    parser_config.add_argument('--delete-files', dest='delete_files', action='store_true', default=None)
    parser_config.add_argument('--keep-files', dest='delete_files', action='store_false')

    parser_add_client = subparsers.add_parser('add-client')
    parser_add_client.set_defaults(func=run_add_client)
    parser_add_client.add_argument('name')
    parser_add_client.add_argument('client_type', choices=['transmission', 'qbittorrent'])
    parser_add_client.add_argument('host')
    parser_add_client.add_argument('port', type=int)
    parser_add_client.add_argument('--username')
    parser_add_client.add_argument('--password')

    parser_remove_client = subparsers.add_parser('remove-client')
    parser_remove_client.set_defaults(func=run_remove_client)
    parser_remove_client.add_argument('name')

    parser_clients = subparsers.add_parser('clients')
    parser_clients.set_defaults(func=run_clients)

    for name, func in [('show', run_show), ('pause', run_pause), ('resume', run_resume),
                       ('recheck', run_recheck), ('reannounce', run_reannounce)]:
        parser_selection = subparsers.add_parser(name)
        parser_selection.set_defaults(func=func)
        _add_selection_args(parser_selection)

    parser_delete = subparsers.add_parser('delete')
    parser_delete.set_defaults(func=run_delete)
    _add_selection_args(parser_delete)
    parser_delete.add_argument('--keep-files', action='store_true', help='Do not delete downloaded data.')
    parser_delete.add_argument('--msg', default='', help='Note stored with the traffic record.')

    parser_set_category = subparsers.add_parser('set-category')
    parser_set_category.set_defaults(func=run_set_category)
    parser_set_category.add_argument('category_name')
    _add_selection_args(parser_set_category)

    for name, func in [('add-tags', run_add_tags), ('remove-tags', run_remove_tags)]:
        parser_tags = subparsers.add_parser(name)
        parser_tags.set_defaults(func=func)
        parser_tags.add_argument('tags', help='Comma-separated tags.')
        _add_selection_args(parser_tags)

    parser_add = subparsers.add_parser('add')
    parser_add.set_defaults(func=run_add)
    parser_add.add_argument('client')
    parser_add.add_argument('torrent_file')
    parser_add.add_argument('--category', help='Category of the new torrent.')
    parser_add.add_argument('--tags', default='', help='Comma-separated tags of the new torrent.')
    parser_add.add_argument('--save-path', help='Download directory.')
    parser_add.add_argument('--rename', help='Name the torrent differently.')
    parser_add.add_argument('--paused', action='store_true', help='Add without starting.')
    parser_add.add_argument('--skip-checking', action='store_true', help='Trust existing data without a recheck.')

    for name, func in [('tags', run_tags), ('categories', run_categories)]:
        parser_list = subparsers.add_parser(name)
        parser_list.set_defaults(func=func)
        parser_list.add_argument('client')

    for name, func in [('create-tags', run_create_tags), ('delete-tags', run_delete_tags)]:
        parser_tag_admin = subparsers.add_parser(name)
        parser_tag_admin.set_defaults(func=func)
        parser_tag_admin.add_argument('client')
        parser_tag_admin.add_argument('tags', help='Comma-separated tags.')

    parser_create_category = subparsers.add_parser('create-category')
    parser_create_category.set_defaults(func=run_create_category)
    parser_create_category.add_argument('client')
    parser_create_category.add_argument('category_name')
    parser_create_category.add_argument('--save-path', help='Default download directory of the category.')

    parser_delete_categories = subparsers.add_parser('delete-categories')
    parser_delete_categories.set_defaults(func=run_delete_categories)
    parser_delete_categories.add_argument('client')
    parser_delete_categories.add_argument('categories', help='Comma-separated categories.')

    parser_set_save_path = subparsers.add_parser('set-save-path')
    parser_set_save_path.set_defaults(func=run_set_save_path)
    parser_set_save_path.add_argument('save_path')
    _add_selection_args(parser_set_save_path)

    parser_limit = subparsers.add_parser('limit')
    parser_limit.set_defaults(func=run_limit)
    _add_selection_args(parser_limit)
    parser_limit.add_argument('--download', type=int, help='Download limit in bytes per second, 0 for none.')
    parser_limit.add_argument('--upload', type=int, help='Upload limit in bytes per second, 0 for none.')

    parser_xseedcheck = subparsers.add_parser('xseedcheck')
    parser_xseedcheck.set_defaults(func=run_xseedcheck)
    parser_xseedcheck.add_argument('client')
    parser_xseedcheck.add_argument('info_hash')
    parser_xseedcheck.add_argument('torrent_file')

    parser_stats = subparsers.add_parser('stats')
    parser_stats.set_defaults(func=run_stats)
    parser_stats.add_argument('clients', nargs='*', help='Show per site traffic of these clients.')
    parser_stats.add_argument('--stats-file', help='Read this stats log instead of the configured one.')

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    configure_logging(logging.getLevelName(args.log_level))  # getLevelName will return the code here

    with PtkeeperHost(args.state) as host:
        try:
            return args.func(host, args)
        except (PtkeeperException, InvalidSelectorException) as exc:
            logger.error('{}', exc)
            return 1


if __name__ == '__main__':
    sys.exit(main())
