"""
Asynchronous basin renderer with supersession.

The BasinRenderer class handles:
- Background computation so the UI stays responsive
- A generation id per request; only the latest generation's output is kept
- Early exit of a superseded render between rows
- Progress reporting for the window caption
"""

import logging
import threading
from dataclasses import replace

from .basins import ImageEvent, ProgressEvent, preview_iterations, render_basins
from .expression import ParseError

logger = logging.getLogger(__name__)


class BasinRenderer:
    """
    Runs basin renders on a background thread.

    Usage:
        renderer = BasinRenderer()
        renderer.compute_async(RenderRequest(expr="z^3 - 1"))

        # In your game loop:
        image, request = renderer.get_result()
        if image is not None:
            display(image.to_array())

    A new request supersedes any render still running: the running render
    stops at its next row and its output is never returned.
    """

    def __init__(self):
        self.lock = threading.Lock()
        self.generation = 0
        self.computing = False
        self.pending = None

        self.result_ready = False
        self.result = None
        self.result_request = None
        self.result_generation = None
        self.progress = 0.0
        self.error = None

        self._idle = threading.Event()
        self._idle.set()

    def compute_async(self, request, preview=False):
        """
        Start rendering a request in the background.

        Args:
            request: RenderRequest
            preview: Render with the reduced iteration budget used while
                the view is being dragged

        Returns:
            The generation id assigned to this request
        """
        if preview:
            request = replace(request, max_iter=preview_iterations(request.max_iter))
        with self.lock:
            self.generation += 1
            generation = self.generation
            self.pending = (generation, request)
            self.progress = 0.0
            self.error = None
            self._idle.clear()
            if not self.computing:
                self.computing = True
                thread = threading.Thread(target=self._compute_thread)
                thread.daemon = True
                thread.start()
        return generation

    def is_current(self, generation):
        with self.lock:
            return generation == self.generation

    def _compute_thread(self):
        """Background thread: render pending requests until none is left."""
        while True:
            with self.lock:
                job = self.pending
                self.pending = None
                if job is None:
                    self.computing = False
                    self._idle.set()
                    break

            generation, request = job
            try:
                events = render_basins(request, should_continue=lambda g=generation: self.is_current(g))
                for event in events:
                    self._deliver(generation, request, event)
            except ParseError as e:
                logger.warning("Render of generation %d failed: %s", generation, e)
                with self.lock:
                    if generation == self.generation:
                        self.error = e

    def _deliver(self, generation, request, event):
        with self.lock:
            if generation != self.generation:
                logger.debug("Discarding output of stale generation %d", generation)
                return
            if isinstance(event, ProgressEvent):
                self.progress = event.percent
            elif isinstance(event, ImageEvent):
                self.result = event
                self.result_request = request
                self.result_generation = generation
                self.result_ready = True

    def get_result(self):
        """
        Get the latest render result if ready.

        Returns:
            Tuple of (ImageEvent, RenderRequest) if a new result is ready,
            (None, None) otherwise.
        """
        with self.lock:
            if self.result_ready:
                self.result_ready = False
                return self.result, self.result_request
        return None, None

    def get_progress(self):
        """Progress of the latest request, 0..100."""
        with self.lock:
            return self.progress

    def get_error(self):
        """ParseError of the latest request, or None."""
        with self.lock:
            return self.error

    def wait(self, timeout=None):
        """
        Block until no render is running or pending.

        Returns:
            True if idle, False if the timeout expired first
        """
        return self._idle.wait(timeout)
