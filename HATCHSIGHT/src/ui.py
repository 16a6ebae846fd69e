"""
User interface module.

Shows the annotated camera frame and every debug stream in OpenCV windows
and handles keyboard controls.
"""

import cv2
import logging


class UserInterface:
    """Handles display windows and keyboard controls using OpenCV."""

    def __init__(self, config=None):
        """Initialize user interface.

        Args:
            config: Configuration dictionary
        """
        self.config = config or {}
        self.logger = logging.getLogger(__name__)

        self.window_name = "HATCHSIGHT"
        self.display_width = self.config.get('display_width', 640)
        self.display_height = self.config.get('display_height', 480)
        self.show_debug_streams = self.config.get('show_debug_streams', True)
        self.paused = False

    def initialize(self):
        """Create the main display window.

        Returns:
            bool: True if initialization successful, False otherwise
        """
        try:
            cv2.namedWindow(self.window_name, cv2.WINDOW_NORMAL)
            cv2.resizeWindow(self.window_name, self.display_width, self.display_height)
        except cv2.error as e:
            self.logger.error(f"UI initialization failed: {e}")
            return False

        self.logger.info(f"UI initialized: {self.display_width}x{self.display_height}")
        return True

    def display_frame(self, frame, streams=()):
        """Display the processed frame and the latest frame of each stream."""
        if frame is None:
            return

        if self.paused:
            cv2.putText(frame, "PAUSED", (10, 20), cv2.FONT_HERSHEY_SIMPLEX, 0.5, (0, 0, 255), 1)
        cv2.imshow(self.window_name, frame)

        if self.show_debug_streams:
            for stream in streams:
                image = stream.latest()
                if image is not None:
                    cv2.imshow(stream.name, image)

    def handle_events(self):
        """Handle user input events.

        Returns:
            bool: True to continue running, False to exit
        """
        key = cv2.waitKey(1) & 0xFF

        if key == ord('q') or key == 27:  # 'q' or ESC
            self.logger.info("User requested exit")
            return False

        elif key == ord('p'):
            self.paused = not self.paused
            self.logger.info(f"Paused: {self.paused}")

        elif key == ord('d'):
            self.show_debug_streams = not self.show_debug_streams
            self.logger.info(f"Debug streams: {self.show_debug_streams}")

        elif key == ord('h'):
            self._print_help()

        return True

    def _print_help(self):
        """Print help information to console."""
        help_text = """
        HATCHSIGHT Controls:
        ====================
        q / ESC - Quit application
        p       - Pause/Resume processing
        d       - Toggle debug stream windows
        h       - Show this help
        """
        print(help_text)

    def cleanup(self):
        """Clean up UI resources."""
        cv2.destroyAllWindows()
        self.logger.info("UI cleaned up")
