"""Fetch resources of one tenant and write them to a JSON file.

Examples:
  ctp-fetch --project-key my-project --resource products --all --out data/products.json
  ctp-fetch --project-key my-project --resource orders --id 1b2c... --out data/order.json
  ctp-fetch --project-key my-project --resource customers --key jane --out data/customer.json

Credentials come from config/ctp_config.yaml (or CTP_CONFIG_PATH) and CTP_* variables;
a local .env file is read first.
"""
from __future__ import annotations
import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, List, Optional

from .client import BatchOptions, DEFAULT_PAGE_SIZE, get_client_for_project
from .config import load_env_file
from .exceptions import CtpError
from .uri import SERVICES

logger = logging.getLogger('ctp_client')


def parse_args(argv: Optional[List[str]] = None):
    p = argparse.ArgumentParser(description='Fetch commerce platform resources')
    p.add_argument('--project-key', help='Tenant project key (defaults to CTP_PROJECT_KEY)')
    p.add_argument('--resource', required=True, help='Resource service, e.g. products, orders, custom-objects')
    p.add_argument('--id', help='Fetch a single resource by id')
    p.add_argument('--key', help='Fetch a single resource by key')
    p.add_argument('--where', action='append', default=[], help='Query predicate (repeatable)')
    p.add_argument('--all', action='store_true', help='Page through every result')
    p.add_argument('--page-size', type=int, default=DEFAULT_PAGE_SIZE)
    p.add_argument('--component', default='extension', choices=['extension', 'notification'])
    p.add_argument('--config', type=Path, help='Path to the YAML credentials file')
    p.add_argument('--out', required=True, help='Output JSON file path')
    p.add_argument('--verbose', action='store_true')
    return p.parse_args(argv)


async def run(args) -> Any:
    client = get_client_for_project(args.project_key, component=args.component, config_path=args.config)
    builder = client.builder()
    resource = args.resource.replace('-', '_')
    uri = getattr(builder, resource) if resource in SERVICES else builder.service(args.resource)
    for predicate in args.where:
        uri = uri.where(predicate)
    if args.id:
        return (await client.fetch_by_id(uri, args.id)).body
    if args.key:
        return (await client.fetch_by_key(uri, args.key)).body
    if args.all:
        def _progress(results):
            logger.info('Fetched page with %d result(s)', len(results))
        return await client.fetch_batches(uri, _progress, BatchOptions(accumulate=True, page_size=args.page_size))
    return (await client.fetch(uri)).body


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format='[%(levelname)s] %(message)s')
    load_env_file(Path('.env'))
    try:
        data = asyncio.run(run(args))
    except CtpError as e:
        logger.error('%s', e)
        return 1
    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding='utf-8')
    logger.info('Wrote %s', out_path)
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
