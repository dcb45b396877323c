"""
Vision - Template search, color-based object search and upgrade panel reading
All queries are pure functions of the frame they are given
"""

import math
from typing import List, NamedTuple, Optional, Tuple

import cv2
import numpy as np

from ..utils.logger import get_logger
from ..utils.config import VisionConfig
from ..utils.exceptions import TemplateNotFoundError
from ..utils.game_resources import GameResources
from ..utils.tesseract_ocr import PageLayout, get_tesseract_reader

logger = get_logger(__name__)

Point = Tuple[int, int]


class TemplateMatch(NamedTuple):
    """Location of a template match and its normalized correlation score"""
    x: int
    y: int
    confidence: float

    @property
    def point(self) -> Point:
        return self.x, self.y


class Vision:
    """
    Image analysis over captured frames (BGR numpy arrays)
    """

    def __init__(self, config: Optional[VisionConfig] = None, ocr_reader=None):
        """
        Args:
            config: Vision settings, defaults if None
            ocr_reader: Object with read_text(image, layout); the shared
                Tesseract reader is created on first use if None
        """
        self.config = config or VisionConfig()
        self.resources = GameResources(self.config.templates_dir)
        self._ocr_reader = ocr_reader

    @property
    def ocr_reader(self):
        if self._ocr_reader is None:
            self._ocr_reader = get_tesseract_reader(
                tesseract_cmd=self.config.tesseract_cmd,
                lang=self.config.ocr_language,
                whitelist=self.config.ocr_whitelist,
            )
        return self._ocr_reader

    def load_template(self, template: str) -> np.ndarray:
        """
        Read a template image from disk. Templates are not cached.

        Raises:
            TemplateNotFoundError: if the file is missing or unreadable
        """
        path = self.resources.path(template)
        image = cv2.imread(str(path), cv2.IMREAD_COLOR) if path.is_file() else None
        if image is None:
            raise TemplateNotFoundError(f"Template not found: {path}")
        return image

    def find_template(self, frame: np.ndarray, template: str,
                      threshold: Optional[float] = None,
                      center: bool = True) -> Optional[TemplateMatch]:
        """
        Find the best match of a template in a frame

        Args:
            frame: Screenshot to search in
            template: Template file name (or path) under the templates directory
            threshold: Minimum TM_CCOEFF_NORMED score, config default if None
            center: Return the template's center instead of its top-left corner

        Returns:
            TemplateMatch if the best score reaches the threshold, None otherwise
        """
        if threshold is None:
            threshold = self.config.confidence_threshold

        template_image = self.load_template(template)
        template_h, template_w = template_image.shape[:2]

        if template_h > frame.shape[0] or template_w > frame.shape[1]:
            logger.warning(f"Template {template} is larger than the frame {frame.shape[1]}x{frame.shape[0]}")
            return None

        result = cv2.matchTemplate(frame, template_image, cv2.TM_CCOEFF_NORMED)
        _, max_val, _, max_loc = cv2.minMaxLoc(result)

        if max_val < threshold:
            return None

        if center:
            return TemplateMatch(int(max_loc[0] + template_w / 2.0),
                                 int(max_loc[1] + template_h / 2.0),
                                 max_val)

        return TemplateMatch(max_loc[0], max_loc[1], max_val)

    def detect_by_color(self, frame: np.ndarray, origin: Point, orbit_radius: int) -> Optional[Point]:
        """
        Find a colored object moving on a circle around an origin

        Candidates are blobs of the configured hue whose area falls inside the
        acceptance band. Each one scores area / (1 + |distance - orbit_radius|),
        favouring large blobs that sit on the orbit.

        Args:
            frame: Screenshot to search in
            origin: Center of the orbit in frame coordinates
            orbit_radius: Expected distance of the object from the origin

        Returns:
            Center of the best candidate in frame coordinates, or None
        """
        frame_h, frame_w = frame.shape[:2]
        ox, oy = int(origin[0]), int(origin[1])

        # Square of side 2 * orbit_radius around the origin, clipped to the frame
        left = max(ox - orbit_radius, 0)
        top = max(oy - orbit_radius, 0)
        right = min(ox + orbit_radius, frame_w)
        bottom = min(oy + orbit_radius, frame_h)
        if right <= left or bottom <= top:
            return None

        cropped = frame[top:bottom, left:right]
        hsv = cv2.cvtColor(cropped, cv2.COLOR_BGR2HSV)
        mask = cv2.inRange(hsv,
                           np.array(self.config.gem_hsv_lower, dtype=np.uint8),
                           np.array(self.config.gem_hsv_upper, dtype=np.uint8))

        contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

        best_score = 0.0
        best_point = None

        for contour in contours:
            area = cv2.contourArea(contour)
            if area < self.config.gem_min_area or area > self.config.gem_max_area:
                continue

            x, y, w, h = cv2.boundingRect(contour)
            center_x = left + x + w // 2
            center_y = top + y + h // 2

            distance = math.hypot(center_x - ox, center_y - oy)
            score = area / (1 + abs(distance - orbit_radius))

            if score > best_score:
                best_score = score
                best_point = (center_x, center_y)

        if best_point is not None:
            logger.debug(f"Colored object at {best_point} (score {best_score:.1f})")
        return best_point

    def _find_panel_boxes(self, frame: np.ndarray) -> List[Tuple[int, int, int, int]]:
        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        blurred = cv2.GaussianBlur(gray, (3, 3), 0)
        edges = cv2.Canny(blurred, 60, 150)
        dilated = cv2.dilate(edges, cv2.getStructuringElement(cv2.MORPH_RECT, (3, 3)))

        contours, _ = cv2.findContours(dilated, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

        boxes = []
        for contour in contours:
            perimeter = cv2.arcLength(contour, True)
            approx = cv2.approxPolyDP(contour, 0.02 * perimeter, True)

            if len(approx) != 4 or cv2.contourArea(approx) <= self.config.panel_min_area:
                continue

            x, y, w, h = cv2.boundingRect(approx)
            aspect = w / float(h)
            if self.config.panel_min_aspect < aspect < self.config.panel_max_aspect:
                boxes.append((x, y, w, h))

        return boxes

    def _prepare_panel(self, box: np.ndarray) -> np.ndarray:
        """Grayscale, upscale and binarize a panel to dark text on white"""
        gray = cv2.cvtColor(box, cv2.COLOR_BGR2GRAY)
        gray = cv2.resize(gray, None, fx=2.0, fy=2.0, interpolation=cv2.INTER_CUBIC)
        _, binary = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY | cv2.THRESH_OTSU)
        binary = cv2.bitwise_not(binary)

        # Paint the panel border white
        t = self.config.panel_border_thickness
        if t > 0:
            binary[:t, :] = 255
            binary[-t:, :] = 255
            binary[:, :t] = 255
            binary[:, -t:] = 255
        return binary

    def detect_upgrades(self, frame: np.ndarray) -> List[Tuple[str, str]]:
        """
        Read the upgrade panels visible in a frame

        Panels are large quadrilaterals found by edge detection. The left half
        of each is read as the upgrade name, the right half as the value block
        (level, amount and cost on separate lines).

        Returns:
            Raw (name, value) text pairs in contour discovery order
        """
        output = []

        for x, y, w, h in self._find_panel_boxes(frame):
            panel = self._prepare_panel(frame[y:y + h, x:x + w])

            mid_x = panel.shape[1] // 2
            left_half = np.ascontiguousarray(panel[:, :mid_x])
            right_half = np.ascontiguousarray(panel[:, mid_x:])

            name = self.ocr_reader.read_text(left_half, PageLayout.SINGLE_COLUMN)
            value = self.ocr_reader.read_text(right_half, PageLayout.SINGLE_BLOCK)
            output.append((name, value))

        logger.debug(f"Read {len(output)} upgrade panel(s)")
        return output
