import argparse
import asyncio
import logging
import sys
from dataclasses import replace

from .errors import FatalError
from .identifiers import load_identifiers
from .logging_utils import configure_logging
from .orchestrator import scrape_identifiers
from .settings import ProxySettings, load_proxy_from_txt, load_scrape_config
from .storage import results_frame, save_df, save_json

logger = logging.getLogger(__name__)


def _parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="asin-scraper",
        description="Extract product details for a list of ASINs with a headless browser.",
    )
    p.add_argument("--input", help="Line-delimited identifier file (default: config input_path)")
    p.add_argument("--config", help="Path to scrape_config.yaml")
    p.add_argument("--output-dir", help="Directory for results.json / results.csv")
    p.add_argument("--concurrency", type=int, help="Pages open at once")
    p.add_argument("--domain", help="Storefront base URL, e.g. https://www.amazon.co.uk")
    p.add_argument("--proxy-file", help="Text file holding one proxy URL; enables the proxy")
    p.add_argument("--seed", type=int, help="Seed for delays and user-agent choice")
    p.add_argument("--log-level", help="DEBUG, INFO, WARNING ...")
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)
    config = load_scrape_config(args.config)

    overrides = {
        "input_path": args.input,
        "output_dir": args.output_dir,
        "concurrency": args.concurrency,
        "base_domain": args.domain,
        "seed": args.seed,
        "log_level": args.log_level,
    }
    if args.proxy_file:
        overrides["proxy_path"] = args.proxy_file
        overrides["use_proxy"] = True
    config = replace(config, **{k: v for k, v in overrides.items() if v is not None})

    configure_logging(config.log_level)

    proxy = load_proxy_from_txt(config.proxy_path) if config.use_proxy else ProxySettings()

    try:
        identifiers = load_identifiers(config.input_path, validate=config.validate_identifiers)
        if not identifiers:
            logger.warning("No valid identifiers found in %s", config.input_path)
            return 0

        logger.info("Found %d identifier(s). Starting with concurrency=%d", len(identifiers), config.concurrency)
        results = asyncio.run(scrape_identifiers(identifiers, config, proxy))
    except FatalError as e:
        logger.error("Fatal error: %s", e)
        return 1

    json_path = save_json(results, config.output_name, config.output_dir)
    csv_path = save_df(results_frame(results), config.output_name, config.output_dir)

    failed = sum(1 for r in results if not r.ok)
    logger.info("Saved %d results to %s and %s (%d failed)", len(results), json_path, csv_path, failed)
    return 0


if __name__ == "__main__":
    sys.exit(main())
