"""Code generation -- OpenAPI document to Python module via :mod:`ast`.

Sub-modules:

* :mod:`~specgen.generator.pipeline` -- :class:`GenerationPipeline`, which
  drives every plugin checkpoint in order.
* :mod:`~specgen.generator.head` -- the module head (imports, ``defaults``,
  ``servers``, ``_request``).
* :mod:`~specgen.generator.types` -- Schema Objects to type expressions.
* :mod:`~specgen.generator.endpoints` -- Operation Objects to functions.
* :mod:`~specgen.generator.naming` -- identifier sanitising.
"""

from specgen.generator.pipeline import GenerationPipeline

__all__ = ["GenerationPipeline"]
