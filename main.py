"""
Main entry point for the Smart Detection engine
Runs one detection on image files from the command line
"""

import sys
import argparse
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from smart_detection import __version__
from smart_detection.core.bitmap import bitmap_size, to_bgr
from smart_detection.core.detector import Detector
from smart_detection.utils.config import ConfigManager, config_manager
from smart_detection.utils.exceptions import DetectionError
from smart_detection.utils.logger import get_logger, set_level

logger = get_logger(__name__)

EXIT_FOUND = 0
EXIT_NOT_FOUND = 1
EXIT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Smart Detection - find a condition image or text in a screenshot")
    parser.add_argument('--screen', '-s', help='Screenshot image file')
    parser.add_argument('--condition', '-c', help='Condition image file')
    parser.add_argument('--roi', nargs=4, type=int, metavar=('X', 'Y', 'W', 'H'),
                        help='Full-size area to search in (whole screen if omitted)')
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument('--threshold', '-t', type=int, help='Detection threshold 0-100 (higher is more tolerant)')
    mode.add_argument('--text', help='Text the detected area must contain (OCR mode)')
    parser.add_argument('--quality', '-q', type=float, help='Detection quality 0-100')
    parser.add_argument('--lang', help='OCR language (e.g. eng, chi_sim)')
    parser.add_argument('--config', help='Configuration file path')
    parser.add_argument('--init-config', action='store_true', help='Write a default configuration file and exit')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    parser.add_argument('--version', action='version', version=f'Smart Detection v{__version__}')
    return parser


def main(argv=None) -> int:
    """Main function"""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        manager = ConfigManager(args.config) if args.config else config_manager

        if args.init_config:
            manager.create_default_config_file()
            print(f"✅ Default configuration written to {manager.config_file}")
            return EXIT_FOUND

        if not args.screen or not args.condition:
            parser.error("--screen and --condition are required")

        config = manager.get_config()
        set_level('DEBUG' if args.verbose else config.logging.level)

        screen = to_bgr(args.screen)
        width, height = bitmap_size(screen)
        quality = args.quality if args.quality is not None else config.scaling.default_quality

        detector = Detector(config=config)
        try:
            if args.text is not None:
                detector.initialize(args.lang)

            detector.set_screen_metrics(config.scaling.default_tag, width, height, quality)
            detector.set_screen_image(screen)

            if args.text is not None:
                outcome = detector.detect_text(args.condition, args.text, args.roi)
            else:
                threshold = args.threshold if args.threshold is not None else config.matching.default_threshold
                outcome = detector.detect_condition(args.condition, threshold, args.roi)
        finally:
            detector.release()

        if outcome.found:
            print(f"✅ Found at ({outcome.center_x}, {outcome.center_y}) confidence={outcome.confidence:.3f}")
            return EXIT_FOUND

        print("❌ Not found")
        return EXIT_NOT_FOUND

    except DetectionError as e:
        print(f"❌ Detection error: {e}")
        return EXIT_ERROR


if __name__ == "__main__":
    exit(main())
