from schwift.schwift_runtime import ScriptRunner, ExecutionResult
from schwift.schwift_interpreter import Environment, Evaluator, Returned
from schwift.schwift_errors import SchwiftError
from schwift.schwift_datatypes import Statement

__all__ = ["ScriptRunner", "ExecutionResult", "Environment", "Evaluator", "Returned", "SchwiftError", "Statement"]
