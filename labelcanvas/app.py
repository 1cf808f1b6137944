"""
LabelCanvas - image annotation canvases for dataset labeling.

This is the main entry point for the demo application.
Run with: python -m labelcanvas.app IMAGE [--project-type detection]
"""

import argparse
import sys
from typing import List, Optional

from PySide6.QtWidgets import QApplication, QMainWindow

from labelcanvas import __version__
from labelcanvas.editor.canvas_factory import create_canvas, supported_project_types
from labelcanvas.editor.classes import AnnotationClass
from labelcanvas.services.config_service import ConfigService
from labelcanvas.services.logging_service import get_logger, setup_logging

CLASS_COLORS = ["#ef4444", "#10b981", "#667eea", "#f59e0b", "#06b6d4", "#8b5cf6"]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="labelcanvas", description="Annotate an image.")
    parser.add_argument("image", nargs="?", help="Image file to annotate")
    parser.add_argument(
        "--project-type",
        default="detection",
        choices=supported_project_types(),
        help="Annotation project type (default: detection)",
    )
    parser.add_argument(
        "--classes",
        default="object",
        help="Comma-separated class names (default: object)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def build_classes(names: str) -> List[AnnotationClass]:
    """Classes from a comma-separated list, colored in order."""
    return [
        AnnotationClass(id=index, name=name.strip(), color=CLASS_COLORS[index % len(CLASS_COLORS)])
        for index, name in enumerate(n for n in names.split(",") if n.strip())
    ]


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for LabelCanvas.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    args = parse_args(argv)

    setup_logging(debug=args.debug)
    logger = get_logger(__name__)

    try:
        logger.info(f"Starting LabelCanvas {__version__}...")
        config = ConfigService()

        app = QApplication(sys.argv[:1])
        app.setApplicationName("LabelCanvas")
        app.setApplicationVersion(__version__)

        window = QMainWindow()
        window.setWindowTitle(f"LabelCanvas - {args.project_type}")

        def show_toast(message: str, level: str) -> None:
            window.statusBar().showMessage(message, 3000)

        canvas = create_canvas(args.project_type, window, config=config, show_toast=show_toast)
        if canvas is None:
            logger.warning(f"Project type '{args.project_type}' is labeled without a canvas")
            return 1

        canvas.set_classes(build_classes(args.classes))
        if args.image:
            try:
                canvas.load_image(args.image)
            except ValueError as e:
                logger.error(f"Failed to open image: {e}")
                return 1

        window.setCentralWidget(canvas)
        window.resize(1200, 800)
        window.show()
        canvas.setFocus()

        exit_code = app.exec()
        logger.info(f"LabelCanvas exiting with code {exit_code}")
        return exit_code

    except Exception as e:
        logger.critical(f"Fatal error during startup: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
