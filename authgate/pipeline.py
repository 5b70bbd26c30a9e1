"""
An explicit middleware pipeline for WSGI applications.

A :class:`Pipeline` is an ordered list of stages in front of a WSGI
application. Each stage is called with the request and a continuation,
``next_stage``; it may return its own response, or call
``next_stage(request)`` to run the rest of the pipeline and return (or
adjust) what comes back. After the last stage, the wrapped application
handles the request.

.. code-block:: python

   from flask import Flask
   from authgate.pipeline import wrap

   app = Flask('someapp')
   wrap(app, [SomeStage(), AnotherStage()])

"""

from typing import Any, Callable, Iterable, List, Sequence
import logging

from werkzeug.wrappers import Request, Response

logger = logging.getLogger(__name__)

NextStage = Callable[[Request], Response]
WSGIApp = Callable[[dict, Callable], Iterable[bytes]]


class Stage(object):
    """Base class for pipeline stages."""

    def handle(self, request: Request, next_stage: NextStage) -> Response:
        """Handle ``request``. The default passes it on unchanged."""
        return next_stage(request)

    def __call__(self, request: Request, next_stage: NextStage) -> Response:
        return self.handle(request, next_stage)


class Pipeline(object):
    """A WSGI application that runs requests through a list of stages."""

    def __init__(self, app: WSGIApp,
                 stages: Sequence[Callable[[Request, NextStage], Response]]) \
            -> None:
        """Put ``stages`` in front of ``app``, first stage outermost."""
        self.app = app
        self.stages: List[Callable] = list(stages)

    def handle(self, request: Request) -> Response:
        """Run ``request`` through every stage, then the application."""
        return self._invoke(0, request)

    def _invoke(self, index: int, request: Request) -> Response:
        if index >= len(self.stages):
            return Response.from_app(self.app, request.environ)
        stage = self.stages[index]

        def next_stage(req: Request) -> Response:
            return self._invoke(index + 1, req)

        return stage(request, next_stage)

    def __call__(self, environ: dict, start_response: Callable) \
            -> Iterable[bytes]:
        """Handle a WSGI request."""
        response = self.handle(Request(environ))
        return response(environ, start_response)


def wrap(app: Any, stages: Sequence[Callable]) -> Any:
    """
    Install a :class:`Pipeline` in front of a Flask application.

    The Flask object itself is kept, so its test client and CLI continue to
    work; only the underlying WSGI callable is wrapped.
    """
    app.wsgi_app = Pipeline(app.wsgi_app, stages)
    return app
