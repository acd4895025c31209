"""
Unit tests for the step interpreter.

Uses MagicMock collaborators injected through the operation context to
observe which steps run, with what state, and in which order.

Test categories:
  - Primitives: step / set / map and their effect on the state
  - Nesting: around / sequence, if_true / guard, if_false
  - Short-circuit: a failing step stops every later step
  - Runner replay: nested blocks replayed later, elsewhere, or never
  - Resolution: method names, callables, malformed declarations
"""

from __future__ import annotations

import logging
from numbers import Number
from unittest.mock import MagicMock

import pytest

from railflow import (
    DSL,
    Error,
    Failure,
    Operation,
    Result,
    State,
    StepDeclarationError,
    Success,
    process,
)
from railflow.assertions import OperationAssertions, ResultAssertions


class OperationWithSteps(Operation):
    context_fields = ("validator", "back_end", "notifier", "cond")
    result_key = "result_value"

    @process
    def call(self, flow):
        flow.step("custom_validate")
        flow.map("add_misc")
        flow.set("get_value")
        flow.set("get_aux_value", to="aux_value")

        @flow.around(lambda run, st: run() if self.cond(st) else None)
        def _(flow):
            flow.set(lambda _: 99, to="aux_value")
            flow.set(lambda _: "UPDATED")

        @flow.around("if_zero")
        def _(flow):
            flow.set(lambda _: "ZERO")

        @flow.if_true("is_negative")
        def _(flow):
            flow.set(lambda _: "NEGATIVE")

        @flow.if_false("is_small")
        def _(flow):
            flow.set(lambda _: "BIG")

        flow.step("notify")

    def custom_validate(self, state):
        params = self.validator(state)
        state["params"] = params
        return params

    def add_misc(self, state):
        return State.for_operation(self, {**state, "misc": -1})

    def get_value(self, state):
        return self.back_end(state["params"])

    def get_aux_value(self, state):
        return state[self.result_key]

    def if_zero(self, run, state):
        if state["result_value"] == 0:
            return run()
        return None

    def is_negative(self, state):
        value = state["result_value"]
        return isinstance(value, Number) and value < 0

    def is_small(self, state):
        value = state["result_value"]
        return not isinstance(value, Number) or abs(value) < 1_000_000

    def notify(self, state):
        return self.notifier(state)


class FlowOperation(Operation):
    """Runs the block handed to it through the context."""

    context_fields = ("block",)

    @process
    def call(self, flow):
        self.block(self, flow)


def run_block(block, input=None, operation_class=FlowOperation, **context):
    return operation_class(block=block, **context).call(input)


VALID_INPUT = {"foo": "FOO"}


@pytest.fixture()
def validator():
    def validate(state):
        input = state["input"]
        return input if "foo" in input else Result.failure(Error("validation"))

    return MagicMock(side_effect=validate)


@pytest.fixture()
def back_end():
    return MagicMock(return_value=123456)


@pytest.fixture()
def notifier():
    return MagicMock(return_value=None)


@pytest.fixture()
def cond():
    return MagicMock(return_value=False)


@pytest.fixture()
def operation(validator, back_end, notifier, cond):
    return OperationWithSteps(validator=validator, back_end=back_end, notifier=notifier, cond=cond)


# ─────────────────────── Entry points ───────────────────────


class TestProcess:
    def test_call_stores_argument_under_input(self, operation, validator):
        def inspect_state(state):
            assert isinstance(state, State)
            assert state["input"] == "my_input_test_value"
            return Result.failure(Error("validation"))

        validator.side_effect = inspect_state

        ResultAssertions.assert_failure(operation.call("my_input_test_value"), "validation")

    def test_call_returns_value_at_result_key(self, operation, back_end):
        back_end.return_value = "SOME_RETURN_VALUE"

        result = operation.call(VALID_INPUT)

        assert isinstance(result, Result)
        assert result == Success("SOME_RETURN_VALUE")

    def test_class_level_call_builds_an_instance(self, validator, back_end, notifier, cond):
        back_end.return_value = "SOME_RETURN_VALUE"
        context = {"validator": validator, "back_end": back_end, "notifier": notifier, "cond": cond}

        assert OperationWithSteps.call(context, VALID_INPUT) == Success("SOME_RETURN_VALUE")


# ─────────────────────── Primitives ───────────────────────


class TestMap:
    def test_replaces_the_current_state(self, operation, validator, notifier):
        seen = {}

        def validate(state):
            assert "misc" not in state
            seen["old"] = state
            return state["input"]

        validator.side_effect = validate

        operation.call(VALID_INPUT)

        new_state = notifier.call_args.args[0]
        assert new_state["misc"] == -1
        assert new_state is not seen["old"]


class TestSet:
    def test_sets_the_result_key_by_default(self, operation, back_end, notifier):
        back_end.return_value = "SOME_VALUE"

        operation.call(VALID_INPUT)

        assert notifier.call_args.args[0]["result_value"] == "SOME_VALUE"

    def test_sets_the_specified_key(self, operation, back_end, notifier):
        def fetch(params):
            assert params == VALID_INPUT
            return "RETURN_VALUE"

        back_end.side_effect = fetch

        operation.call(VALID_INPUT)

        assert notifier.call_args.args[0]["aux_value"] == "RETURN_VALUE"

    def test_failure_leaves_key_unset(self):
        captured = {}

        def block(op, flow):
            flow.set(lambda _: Result.failure(Error("nope")), to="key")
            flow.step(lambda state: captured.update(state))

        result = run_block(block)

        assert result == Failure(Error("nope"))
        assert captured == {}

    def test_forwards_extra_arguments(self):
        def block(op, flow):
            flow.set(lambda state, factor, offset=0: state["input"] * factor + offset, 3, offset=1)

        assert run_block(block, input=2) == Success(7)


class TestStep:
    def test_keeps_state_whatever_the_step_returns(self, operation, notifier):
        notifier.return_value = {"result_value": 0}

        assert operation.call(VALID_INPUT).value() == 123456

    def test_keeps_state_when_step_returns_another_success(self):
        def block(op, flow):
            flow.set(lambda _: "VALUE")
            flow.step(lambda _: Result.success(State({"value": "OTHER"})))

        assert run_block(block) == Success("VALUE")

    def test_failure_propagates(self, operation, validator, back_end):
        result = operation.call({"bar": "BAR"})

        ResultAssertions.assert_failure(result, "validation")
        back_end.assert_not_called()


# ─────────────────────── Nesting ───────────────────────


class TestAround:
    def test_provides_runner_and_state_to_strategy(self, operation, cond):
        def check(state):
            assert state["result_value"] == 123456
            assert state["aux_value"] == 123456
            return True

        cond.side_effect = check

        assert operation.call(VALID_INPUT).value() == "UPDATED"

    def test_transfers_inner_state_to_outer_steps(self, operation, cond, notifier):
        cond.return_value = True

        assert operation.call(VALID_INPUT).value() == "UPDATED"

        final_state = notifier.call_args.args[0]
        assert final_state["aux_value"] == 99
        assert final_state["result_value"] == "UPDATED"

    def test_skipped_altogether_on_failure(self, operation, back_end, cond):
        back_end.return_value = Result.failure(Error("not_available"))

        ResultAssertions.assert_failure(operation.call(VALID_INPUT), "not_available")
        cond.assert_not_called()

    def test_strategy_never_invoked_on_failure(self):
        strategy = MagicMock()

        def block(op, flow):
            flow.step(lambda _: Result.failure(Error("early")))
            flow.around(strategy, lambda flow: flow.set(lambda _: "never"))

        assert run_block(block) == Failure(Error("early"))
        assert strategy.call_count == 0

    def test_accepts_a_method_name(self, operation, back_end):
        back_end.return_value = 0

        assert operation.call(VALID_INPUT).value() == "ZERO"

    def test_result_returned_by_strategy_becomes_the_accumulator(self):
        def block(op, flow):
            flow.set(lambda _: "before")
            flow.around(lambda run, state: Result.failure(Error("vetoed")), lambda flow: None)
            flow.set(lambda _: "after")

        assert run_block(block) == Failure(Error("vetoed"))

    def test_strategy_may_skip_the_runner(self):
        inner = MagicMock()

        def block(op, flow):
            flow.set(lambda _: "kept")
            flow.around(lambda run, state: None, lambda flow: flow.set(inner))

        assert run_block(block) == Success("kept")
        inner.assert_not_called()

    def test_inner_failure_stops_outer_steps(self):
        after = MagicMock()

        def block(op, flow):
            @flow.sequence(lambda run, state: run())
            def _(flow):
                flow.step(lambda _: Result.failure(Error("inner")))

            flow.step(after)

        assert run_block(block) == Failure(Error("inner"))
        after.assert_not_called()

    def test_runs_callbacks_after_failure_without_altering_result(self):
        logger = MagicMock()

        class OperationWithCallbacks(Operation):
            context_fields = ("logger",)

            @process
            def call(self, flow):
                @flow.around("cleanup_callback_context")
                def _(flow):
                    @flow.around("put_steps_in_callback")
                    def _(flow):
                        flow.set(lambda _: "SHOULD_NOT_BE_SET")
                        flow.step(lambda _: self.logger.log("calling back from callback"))

                    flow.step("failing_step")

            def failing_step(self, _):
                return self.fail_with("im_a_failure!")

            def put_steps_in_callback(self, runner, state):
                state["callbacks"].append(lambda: runner(self.dsl_for(state)))

            def cleanup_callback_context(self, runner, state):
                state["callbacks"] = []
                runner()
                for callback in state["callbacks"]:
                    callback()

        operation = OperationWithCallbacks(logger=logger)

        OperationAssertions.assert_fails_on(operation, VALID_INPUT, kind="im_a_failure!")
        logger.log.assert_called_once_with("calling back from callback")


class TestIfTrue:
    def test_runs_inner_steps_when_condition_holds(self, operation, back_end):
        back_end.return_value = -77
        assert operation.call(VALID_INPUT).value() == "NEGATIVE"

    def test_skips_inner_steps_when_condition_fails(self, operation, back_end):
        back_end.return_value = 77
        assert operation.call(VALID_INPUT).value() == 77

    def test_guard_alias(self):
        def block(op, flow):
            flow.guard(lambda state: state["input"], lambda flow: flow.set(lambda _: "guarded"))

        assert run_block(block, input=True) == Success("guarded")
        assert run_block(block, input=False) == Success(None)


class TestIfFalse:
    def test_runs_inner_steps_when_condition_fails(self, operation, back_end):
        back_end.return_value = 77_000_000
        assert operation.call(VALID_INPUT).value() == "BIG"

    def test_skips_inner_steps_when_condition_holds(self, operation, back_end):
        back_end.return_value = 77
        assert operation.call(VALID_INPUT).value() == 77

    def test_condition_evaluated_once(self):
        cond = MagicMock(return_value=False)

        def block(op, flow):
            flow.if_false(cond, lambda flow: flow.set(lambda _: "ran"))

        assert run_block(block) == Success("ran")
        assert cond.call_count == 1


# ─────────────────────── Short-circuit ───────────────────────


class TestShortCircuit:
    @pytest.mark.parametrize("failing_index", [0, 1, 2, 3])
    def test_no_step_after_a_failure_runs(self, failing_index):
        error = Error("step_failed", details={"index": failing_index})
        steps = [MagicMock(return_value=i) for i in range(4)]
        steps[failing_index].return_value = Result.failure(error)

        def block(op, flow):
            flow.step(steps[0])
            flow.set(steps[1], to="one")
            flow.step(steps[2])
            flow.set(steps[3])

        result = run_block(block)

        assert result == Failure(error)
        for earlier in steps[: failing_index + 1]:
            earlier.assert_called_once()
        for later in steps[failing_index + 1 :]:
            later.assert_not_called()


# ─────────────────────── Runner replay ───────────────────────


class TestRunner:
    def test_runner_can_be_invoked_more_than_once(self):
        counter = MagicMock(return_value=None)

        def block(op, flow):
            flow.around(lambda run, state: [run(), run()][-1], lambda flow: flow.step(counter))

        run_block(block)

        assert counter.call_count == 2

    def test_runner_replays_against_a_given_state(self):
        replays = []

        def block(op, flow):
            def strategy(run, state):
                snapshot = state.copy()
                replays.append(lambda: run(snapshot))

            flow.set(lambda _: "original")
            flow.around(strategy, lambda flow: flow.set(lambda state: state["value"] + "!", to="seen"))
            flow.set(lambda _: "changed later")

        assert run_block(block) == Success("changed later")

        (replay,) = replays
        replayed = replay()
        assert replayed.value()["seen"] == "original!"

    def test_runner_accepts_a_plain_mapping(self):
        runners = []

        def block(op, flow):
            flow.around(lambda run, state: runners.append(run), lambda flow: flow.set(lambda s: s["n"] * 2))

        run_block(block)

        assert runners[0]({"n": 21}).value().result() == 42

    def test_runner_accepts_another_dsl(self):
        runners = []

        def block(op, flow):
            flow.around(lambda run, state: runners.append(run), lambda flow: flow.set(lambda _: "X"))

        run_block(block)

        operation = FlowOperation(block=block)
        other = DSL(State.for_operation(operation, {}), operation)
        runners[0](other)
        assert other.result.value().result() == "X"

    def test_bare_runner_deferred_past_the_call_sees_the_final_state(self):
        deferred = []

        def block(op, flow):
            flow.set(lambda _: "at capture")
            flow.around(lambda run, state: deferred.append(run), lambda flow: flow.set(lambda s: s["value"], to="seen"))
            flow.set(lambda _: "at the end")

        assert run_block(block) == Success("at the end")

        (run,) = deferred
        assert run().value()["seen"] == "at the end"


# ─────────────────────── Resolution ───────────────────────


class NamedSteps(FlowOperation):
    def double(self, state):
        return state["input"] * 2


class TestResolution:
    def test_method_name(self):
        assert run_block(lambda op, flow: flow.set("double"), 4, NamedSteps) == Success(8)

    def test_method_resolved_when_the_step_runs(self):
        operation = FlowOperation(block=lambda op, flow: flow.set("dynamic"))
        operation.dynamic = lambda state: "attached later"

        assert operation.call(None) == Success("attached later")

    def test_unknown_method_name(self):
        with pytest.raises(StepDeclarationError, match="no step named 'missing'"):
            run_block(lambda op, flow: flow.step("missing"))

    def test_missing_step(self):
        with pytest.raises(StepDeclarationError, match="next step not provided"):
            run_block(lambda op, flow: flow.step(None))

    def test_non_callable_step(self):
        with pytest.raises(StepDeclarationError, match="not a valid step"):
            run_block(lambda op, flow: flow.set(42))

    def test_inline_closure_sees_the_operation(self):
        class WithHelper(FlowOperation):
            def helper(self):
                return "from helper"

        def block(op, flow):
            flow.set(lambda state: op.helper())

        assert run_block(block, operation_class=WithHelper) == Success("from helper")

    def test_unapplied_decorator_is_rejected(self):
        def block(op, flow):
            flow.if_true(lambda state: True)
            flow.set(lambda _: "unreachable")

        with pytest.raises(StepDeclarationError, match=r"if_true\(\) must provide a step or a block"):
            run_block(block)

    def test_unapplied_decorator_in_nested_block_is_rejected(self):
        def block(op, flow):
            @flow.around(lambda run, state: run())
            def _(flow):
                flow.around("strategy")

        with pytest.raises(StepDeclarationError, match=r"around\(\) must provide"):
            run_block(block)


class TestAutoDeconstructState:
    class Deconstructing(FlowOperation):
        auto_deconstruct_state = True

        def greet(self, *, input, **_):
            return f"hello {input}"

        def positional(self, state):
            return state["input"].upper()

    def test_keyword_only_method_receives_state_entries(self):
        result = run_block(lambda op, flow: flow.set("greet"), "paul", self.Deconstructing)
        assert result == Success("hello paul")

    def test_positional_method_receives_state(self):
        result = run_block(lambda op, flow: flow.set("positional"), "paul", self.Deconstructing)
        assert result == Success("PAUL")

    def test_disabled_by_default(self):
        class Plain(FlowOperation):
            def greet(self, *, input, **_):
                return input

        with pytest.raises(TypeError):
            run_block(lambda op, flow: flow.set("greet"), "paul", Plain)


class TestTracing:
    def test_steps_are_traced_at_debug(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="railflow.dsl"):
            run_block(lambda op, flow: flow.set(lambda _: Result.failure(Error("x"))), None, NamedSteps)

        assert "set" in caplog.text
        assert "failure" in caplog.text
