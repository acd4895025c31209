"""
Validation capability: check the call input against a contract.

    class CreateUser(Validation, Operation):
        contract = UserForm

        @process
        def call(self, flow):
            flow.step("validate")        # sets state["params"] on success
            flow.set("create_user")

The contract is a pydantic model class or any object satisfying the
Validator port. Contracts that need injected values declare them in
contract_options; validate(state, with_={option: state_key}) wires them
explicitly, and auto_wire = True wires each option from the state entry of
the same name.
"""

from __future__ import annotations

from typing import Any, ClassVar, Mapping, Optional

from pydantic import BaseModel

from railflow.adapters.pydantic_validator import PydanticValidator
from railflow.exceptions import StepDeclarationError
from railflow.ports import Validator
from railflow.result import Result
from railflow.state import State


class Validation:
    contract: ClassVar[Any] = None
    contract_options: ClassVar[tuple[str, ...]] = ()
    auto_wire: ClassVar[bool] = False

    def validate(self, state: State, with_: Optional[Mapping[str, str]] = None) -> Result[State]:
        """Validate state["input"] and store the validated values as state["params"]."""
        if with_ is None and self.auto_wire and self.contract_options:
            with_ = {option: option for option in self.contract_options}
        options = {option: state.get(key) for option, key in (with_ or {}).items()}

        return self.validate_with(state["input"], **options).then(
            lambda params: state.update(params=params)
        )

    def validate_with(self, input: Any, **options: Any) -> Result[Any]:
        return self.build_validator().validate(input, **options)

    def build_validator(self) -> Validator:
        contract = type(self).contract
        if contract is None:
            raise StepDeclarationError(f"{type(self).__name__} declares no contract")
        if isinstance(contract, type) and issubclass(contract, BaseModel):
            return PydanticValidator(contract)
        return contract
