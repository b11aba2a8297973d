"""
Interactive basin-of-attraction viewer.

Contains the BasinApp class which handles:
- Window setup and main loop
- User input (zoom, pan, box select, keyboard)
- Handing render requests to the background renderer
- Display of finished renders, with progress in the caption
"""

import os
from dataclasses import replace
from datetime import datetime

import pygame

from .basins import compute_basins, warmup_jit
from .palettes import list_palette_names
from .renderer import BasinRenderer
from .settings import fractal_request, load_settings
from .view import ZOOM_IN_FACTOR, ZOOM_OUT_FACTOR


def image_to_surface(image):
    """Wrap an ImageEvent's RGBA buffer in a pygame Surface (row 0 at the top)."""
    return pygame.image.frombuffer(image.pixels, (image.width, image.height), 'RGBA')


def save_png(image, filename):
    """Write an ImageEvent to a PNG file."""
    pygame.image.save(image_to_surface(image), filename)


class BasinApp:
    """
    Main application class for the basin viewer.

    Handles the pygame window, event loop, and coordinates between the
    renderer and the display.
    """

    RENDER_DELAY_MS = 25  # Delay before starting render after user action
    MAX_ITER_STEP = 10
    MAX_ITER_LIMIT = 1000
    SAVE_SCALE = 2

    METHOD_KEYS = {
        pygame.K_n: 'newton',
        pygame.K_s: 'secant',
        pygame.K_p: 'picard',
    }

    def __init__(self, request=None, settings=None):
        """
        Initialize the application.

        Args:
            request: Starting RenderRequest (default: from settings.json);
                its width and height set the window size
            settings: Loaded settings dict (default: load settings.json)
        """
        self.settings = settings if settings is not None else load_settings()
        self.request = request or fractal_request(self.settings)
        self.home_view = self.request.view
        self.width = self.request.width
        self.height = self.request.height

        # Pygame state (initialized in run())
        self.screen = None
        self.clock = None

        self.renderer = BasinRenderer()

        # Display state
        self.current_surface = None
        self.render_view = None

        # Input state
        self.dragging = False
        self.drag_start = None
        self.drag_start_view = None
        self.box_mode = False
        self.box_start = None
        self.box_end = None

        # Render timing
        self.last_action_time = 0
        self.pending_render = True
        self.pending_preview = False

        self.running = False

    def run(self):
        """Run the application main loop."""
        self._init_pygame()
        pygame.display.set_caption("Compiling (first run only)...")
        warmup_jit()

        self.running = True
        while self.running:
            current_time = pygame.time.get_ticks()

            self._handle_events(current_time)
            self._check_render_result()
            self._maybe_start_render(current_time)
            self._update_caption()
            self._draw()

            self.clock.tick(60)

        pygame.quit()

    def _init_pygame(self):
        """Initialize pygame and create window."""
        pygame.init()
        self.screen = pygame.display.set_mode((self.width, self.height), pygame.DOUBLEBUF)
        self.clock = pygame.time.Clock()

    def _request_render(self, current_time, preview=False):
        self.last_action_time = current_time
        self.pending_render = True
        self.pending_preview = preview

    def _handle_events(self, current_time):
        """Process all pending pygame events."""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False
            elif event.type == pygame.MOUSEWHEEL:
                self._handle_zoom(event, current_time)
            elif event.type == pygame.MOUSEBUTTONDOWN:
                self._handle_mouse_down(event)
            elif event.type == pygame.MOUSEBUTTONUP:
                self._handle_mouse_up(event, current_time)
            elif event.type == pygame.MOUSEMOTION:
                self._handle_mouse_motion(event, current_time)
            elif event.type == pygame.KEYDOWN:
                self._handle_key(event, current_time)

    def _set_view(self, view):
        self.request = replace(self.request, view=view)

    def _handle_zoom(self, event, current_time):
        """Handle mouse wheel zoom about the view centre."""
        factor = ZOOM_IN_FACTOR if event.y > 0 else ZOOM_OUT_FACTOR
        self._set_view(self.request.view.zoom(factor))
        self._request_render(current_time)

    def _handle_mouse_down(self, event):
        """Handle mouse button press."""
        if event.button != 1:
            return
        if self.box_mode:
            self.box_start = event.pos
            self.box_end = event.pos
        else:
            self.dragging = True
            self.drag_start = event.pos
            self.drag_start_view = self.request.view

    def _handle_mouse_up(self, event, current_time):
        """Handle mouse button release."""
        if event.button != 1:
            return
        if self.box_start is not None:
            (x0, y0), (x1, y1) = self.box_start, event.pos
            self._set_view(self.request.view.box_select(x0, y0, x1, y1, self.width, self.height))
            self.box_start = None
            self.box_end = None
            self._request_render(current_time)
        elif self.dragging:
            self.dragging = False
            self._request_render(current_time)

    def _handle_mouse_motion(self, event, current_time):
        """Handle mouse movement (for dragging and box selection)."""
        if self.box_start is not None:
            self.box_end = event.pos
        elif self.dragging and self.drag_start:
            mx, my = event.pos
            dx = mx - self.drag_start[0]
            dy = my - self.drag_start[1]
            self._set_view(self.drag_start_view.pan(dx, dy, self.width, self.height))
            self._request_render(current_time, preview=True)

    def _handle_key(self, event, current_time):
        """Handle keyboard input."""
        mods = pygame.key.get_mods()
        if event.key == pygame.K_s and mods & (pygame.KMOD_CTRL | pygame.KMOD_META):
            self._save_image()
        elif event.key in self.METHOD_KEYS:
            self.request = replace(self.request, method=self.METHOD_KEYS[event.key])
            self._request_render(current_time)
        elif event.key == pygame.K_b:
            self.box_mode = not self.box_mode
            self.box_start = None
        elif event.key == pygame.K_RIGHTBRACKET:
            max_iter = min(self.MAX_ITER_LIMIT, self.request.max_iter + self.MAX_ITER_STEP)
            self.request = replace(self.request, max_iter=max_iter)
            self._request_render(current_time)
        elif event.key == pygame.K_LEFTBRACKET:
            max_iter = max(self.MAX_ITER_STEP, self.request.max_iter - self.MAX_ITER_STEP)
            self.request = replace(self.request, max_iter=max_iter)
            self._request_render(current_time)
        elif event.key == pygame.K_c:
            names = list_palette_names()
            current = names.index(self.request.palette) if self.request.palette in names else -1
            self.request = replace(self.request, palette=names[(current + 1) % len(names)])
            self._request_render(current_time)
        elif event.key == pygame.K_r:
            self._set_view(self.home_view)
            self._request_render(current_time)
        elif event.key == pygame.K_ESCAPE:
            self.running = False

    def _save_image(self):
        """Save a higher-resolution image of the current view."""
        pygame.display.set_caption("Saving image... (this may take a moment)")
        pygame.display.flip()

        request = replace(
            self.request,
            width=self.width * self.SAVE_SCALE,
            height=self.height * self.SAVE_SCALE,
        )
        image = compute_basins(request)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        desktop_path = os.path.expanduser("~/Desktop")
        folder = desktop_path if os.path.isdir(desktop_path) else os.getcwd()
        filename = os.path.join(folder, f"basins_{timestamp}.png")

        save_png(image, filename)
        print(f"Image saved to: {filename}")

    def _check_render_result(self):
        """Check if async render has completed."""
        image, request = self.renderer.get_result()
        if image is not None:
            self.current_surface = image_to_surface(image)
            self.render_view = request.view

    def _maybe_start_render(self, current_time):
        """Start a new render if conditions are met."""
        if self.pending_render and current_time - self.last_action_time > self.RENDER_DELAY_MS:
            self.renderer.compute_async(self.request, preview=self.pending_preview)
            self.pending_render = False

    def _update_caption(self):
        error = self.renderer.get_error()
        mode = "box select" if self.box_mode else "drag to pan"
        title = f"Basins of {self.request.expr} ({self.request.method}, {self.request.max_iter} iter)"
        if error is not None:
            pygame.display.set_caption(f"{title} - {error.reason}")
        elif self.renderer.computing:
            pygame.display.set_caption(f"{title} - computing {self.renderer.get_progress():.0f}%")
        else:
            pygame.display.set_caption(f"{title} - scroll to zoom, {mode}, B box, N/S/P method")

    def _draw(self):
        """Draw the current frame."""
        self.screen.fill((0, 0, 0))
        if self.current_surface is not None:
            self._blit_surface_to_view(self.current_surface, self.render_view)
        if self.box_start is not None and self.box_end is not None:
            (x0, y0), (x1, y1) = self.box_start, self.box_end
            rect = pygame.Rect(min(x0, x1), min(y0, y1), abs(x1 - x0), abs(y1 - y0))
            pygame.draw.rect(self.screen, (255, 255, 255), rect, 1)
        pygame.display.flip()

    def _blit_surface_to_view(self, surface, bounds):
        """
        Blit a rendered surface to the screen, transforming for current view.

        This handles the case where the rendered view doesn't exactly match
        the current view (e.g., during panning/zooming).
        """
        view = self.request.view
        dst_w = bounds.width / view.width * self.width
        dst_h = bounds.height / view.height * self.height
        dst_left = (bounds.min_re - view.min_re) / view.width * self.width
        dst_top = (bounds.min_im - view.min_im) / view.height * self.height

        if dst_w < 1 or dst_h < 1 or dst_w > 4 * self.width or dst_h > 4 * self.height:
            return
        if (int(dst_w), int(dst_h)) != surface.get_size():
            surface = pygame.transform.smoothscale(surface, (int(dst_w), int(dst_h)))
        self.screen.blit(surface, (int(dst_left), int(dst_top)))


def run(request=None):
    """
    Run the basin viewer.

    Args:
        request: Starting RenderRequest (default from settings.json)
    """
    app = BasinApp(request)
    try:
        app.run()
    except KeyboardInterrupt:
        pygame.quit()
