from __future__ import annotations

from importlib import import_module

import pytest

from ..import_utils import ALL_DELIMCHANNEL_MODULES


@pytest.mark.parametrize("module_name", ALL_DELIMCHANNEL_MODULES)
def test____dunder_all____is_conform(module_name: str) -> None:
    # Arrange
    module = import_module(module_name)
    module_namespace = vars(module)
    try:
        __all_module__: list[str] = module.__all__
    except AttributeError:
        pytest.fail(f"{module_name!r} does not define __all__ variable")
    if sorted(set(__all_module__)) != sorted(__all_module__):
        pytest.fail(f"{module_name!r}: Duplicates found in __all__")

    # Act
    unknown_names = set(__all_module__) - set(module_namespace)

    # Assert
    assert not unknown_names


def test____package____public_names() -> None:
    # Arrange
    import delimchannel

    # Act & Assert
    assert delimchannel.DelimitedMessageChannel is import_module("delimchannel.channel").DelimitedMessageChannel
    assert delimchannel.open_channel is import_module("delimchannel.channel").open_channel
