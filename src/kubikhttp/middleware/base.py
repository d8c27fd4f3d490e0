"""
=============================================================================
MIDDLEWARE AND THE REQUEST PIPELINE
=============================================================================

Every request the HTTP component serves runs through one Pipeline: an
ordered, append-only list of stages assembled during the component's up
phase and closed off with the error dispatcher in its after phase.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       PIPELINE - REQUEST FLOW                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   Request ──────────────────────────────────────────────►           │
    │                                                                     │
    │   ┌──────────┐   ┌──────────┐   ┌──────────┐   ┌──────────────┐     │
    │   │ app tag  │──►│ extension│──►│  /users  │──►│    error     │     │
    │   │  stage   │   │  stages  │   │  router  │   │  dispatcher  │     │
    │   └──────────┘   └──────────┘   └────┬─────┘   └──────▲───────┘     │
    │                                      │ raises         │             │
    │                                      └────────────────┘             │
    │                                                                     │
    │   ◄────────────────────────────────────────────── Response          │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

Three kinds of stage:

    request stage   stage(request, next) -> HTTPResponse
                    Onion contract: pre-process, call next(request),
                    post-process, or short-circuit by returning early.

    mount           pipeline.mount("/users", router)
                    Requests under /users reach router.dispatch() with the
                    prefix stripped; unmatched ones continue down the chain.

    error stage     stage(error, request, next) -> HTTPResponse
                    Skipped on the normal path. When a stage raises, the
                    error goes to the first error stage after it.
                    Calling next(request) resumes normal stages after it.

A request that falls through every stage gets a 404. An error that no
error stage handles propagates out of handle() to the listener.
=============================================================================
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, Optional
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, not_found


logger = logging.getLogger(__name__)


# NextHandler continues the chain: takes a request, returns a response.
NextHandler = Callable[[HTTPRequest], HTTPResponse]
RequestStage = Callable[[HTTPRequest, NextHandler], HTTPResponse]
ErrorStage = Callable[[BaseException, HTTPRequest, NextHandler], HTTPResponse]


class Middleware(ABC):
    """
    Base class for request stages.

        class Timing(Middleware):
            def __call__(self, request, next):
                started = time.time()
                response = next(request)
                response.set_header("X-Time", f"{time.time() - started:.3f}")
                return response

    Plain functions with the same signature work too; subclass when the
    stage carries configuration.
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """Handle the request, calling next(request) to continue the chain."""

    @property
    def name(self) -> str:
        return self.__class__.__name__


class ErrorMiddleware(ABC):
    """
    Base class for error stages.

    Pipeline.use() recognizes instances and registers them as error
    stages. Plain functions go through Pipeline.use_error() instead.
    """

    @abstractmethod
    def __call__(
        self,
        error: BaseException,
        request: HTTPRequest,
        next: NextHandler
    ) -> HTTPResponse:
        """Turn error into a response, or re-raise to pass it along."""

    @property
    def name(self) -> str:
        return self.__class__.__name__


class FunctionMiddleware(Middleware):
    """
    Wraps a (request, next) function as a named Middleware.

        pipeline.use(FunctionMiddleware(my_func, name="auth"))
    """

    def __init__(self, func: RequestStage, name: Optional[str] = None):
        self._func = func
        self._name = name or getattr(func, "__name__", type(func).__name__)

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        return self._func(request, next)

    @property
    def name(self) -> str:
        return self._name


def function_middleware(func: RequestStage) -> FunctionMiddleware:
    """
    Decorator form of FunctionMiddleware.

        @function_middleware
        def add_header(request, next):
            response = next(request)
            response.set_header("X-Custom", "value")
            return response
    """
    return FunctionMiddleware(func)


def stage_name(stage: Any) -> str:
    """Readable name of a stage for log lines."""
    name = getattr(stage, "name", None)
    if isinstance(name, str):
        return name
    return getattr(stage, "__name__", type(stage).__name__)


@dataclass
class Stage:
    """One pipeline entry."""
    func: Callable[..., HTTPResponse]
    handles_errors: bool = False
    name: str = ""


class Pipeline:
    """
    Ordered, append-only chain of request stages, mounts and error stages.

        pipeline = Pipeline()
        pipeline.use(tag_app)                 # request stage
        pipeline.mount("/users", users)       # sub-router
        pipeline.use_error(dispatcher)        # error stage

        response = pipeline.handle(request)

    A Pipeline can itself be mounted on another one (it has dispatch()),
    which is how the API component hangs its chain under /api.
    """

    def __init__(self):
        self._stages: List[Stage] = []

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def use(self, *stages: Callable[..., HTTPResponse]) -> "Pipeline":
        """
        Append stages in the order given.

        ErrorMiddleware instances become error stages, every other callable
        a request stage.

        Raises:
            TypeError: If a stage is not callable.
        """
        for stage in stages:
            if isinstance(stage, ErrorMiddleware):
                self._append(Stage(stage, handles_errors=True, name=stage.name))
            else:
                self._append(Stage(stage, name=stage_name(stage)))
        return self

    def use_error(self, stage: ErrorStage) -> "Pipeline":
        """Append an (error, request, next) function as an error stage."""
        self._append(Stage(stage, handles_errors=True, name=stage_name(stage)))
        return self

    def mount(self, prefix: str, router: Any) -> "Pipeline":
        """
        Mount anything with dispatch(request, next) under a path prefix.

        Inside the mounted router request.path is relative to the prefix
        and request.base_path holds the prefix. Both are restored once
        the router returns or falls through.
        """
        prefix = "/" + prefix.strip("/") if prefix.strip("/") else ""

        def mounted(request: HTTPRequest, next: NextHandler) -> HTTPResponse:
            if prefix and not _is_under(request.path, prefix):
                return next(request)

            original_path, original_base = request.path, request.base_path
            request.path = request.path[len(prefix):] or "/"
            request.base_path = original_base + prefix

            def resume(req: HTTPRequest) -> HTTPResponse:
                req.path, req.base_path = original_path, original_base
                return next(req)

            try:
                return router.dispatch(request, resume)
            finally:
                request.path, request.base_path = original_path, original_base

        if not callable(getattr(router, "dispatch", None)):
            raise TypeError(f"Cannot mount {router!r}: no dispatch(request, next)")
        self._append(Stage(mounted, name=f"mount {prefix or '/'}"))
        return self

    def _append(self, stage: Stage) -> None:
        if not callable(stage.func):
            raise TypeError(f"Pipeline stage must be callable, got {stage.func!r}")
        self._stages.append(stage)
        logger.debug(f"Added stage: {stage.name}")

    # =========================================================================
    # EXECUTION
    # =========================================================================

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Run the request through every stage; 404 if none answers."""
        return self.dispatch(request, _fall_through)

    def dispatch(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Run the stages, calling next(request) if the request falls through.

        Errors raised by a stage are routed to the first error stage after
        it. Errors that already went through the rest of the chain
        propagate unchanged, so no error stage ever sees the same error
        twice.
        """
        stages = list(self._stages)
        escaped: List[BaseException] = []

        def run(index: int, req: HTTPRequest, error: Optional[BaseException]) -> HTTPResponse:
            for position in range(index, len(stages)):
                stage = stages[position]
                if stage.handles_errors != (error is not None):
                    continue

                def call_next(next_req: HTTPRequest, _position: int = position) -> HTTPResponse:
                    try:
                        return run(_position + 1, next_req, None)
                    except Exception as exc:
                        escaped.append(exc)
                        raise

                try:
                    if error is None:
                        return stage.func(req, call_next)
                    return stage.func(error, req, call_next)
                except Exception as exc:
                    if any(exc is seen for seen in escaped):
                        raise
                    return run(position + 1, req, exc)

            if error is not None:
                raise error
            return next(req)

        return run(0, request, None)

    @property
    def stages(self) -> List[Stage]:
        return list(self._stages)

    def __len__(self) -> int:
        return len(self._stages)

    def __iter__(self) -> Iterator[Stage]:
        return iter(self._stages)


def _is_under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def _fall_through(request: HTTPRequest) -> HTTPResponse:
    return not_found(f"Cannot {request.method} {request.original_path}")
