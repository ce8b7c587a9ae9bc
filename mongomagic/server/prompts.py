##############################################################################
# Copyright (c) Lawrence Livermore National Security, LLC and other Merlin
# Project developers. See top-level LICENSE and COPYRIGHT files for dates and
# other details. No copyright assignment is required to contribute to Merlin.
##############################################################################

"""Interactive questions asked while provisioning the server."""

import getpass
from typing import Any, Dict, Tuple

from tabulate import tabulate

from mongomagic.exceptions import InvalidChoiceError


def prompt_yes_no(question: str) -> bool:
    """
    Ask a yes/no question until the answer is 'y' or 'n'.

    Args:
        question: The question to display, without the "(y/n)" suffix.

    Returns:
        True for 'y', False for 'n'.
    """
    valid_inputs = ["y", "n"]
    user_input = input(f"{question} (y/n): ").strip().lower()
    while user_input not in valid_inputs:
        user_input = input("Invalid input. Use 'y' for 'yes' or 'n' for 'no': ").strip().lower()
    return user_input == "y"


def prompt_menu(title: str, options: Dict[str, Tuple[str, Any]]) -> Any:
    """
    Show a numbered menu and return the value behind the operator's choice.

    There is no retry: an answer that is not one of the menu keys is fatal.

    Args:
        title: The heading printed above the menu.
        options: Maps each accepted answer to a `(label, value)` pair.

    Returns:
        The value mapped to the chosen key.

    Raises:
        InvalidChoiceError: If the answer is not one of the keys of `options`.
    """
    print(title)
    print(tabulate([(key, label) for key, (label, _) in options.items()], headers=["Choice", "Option"]))
    keys = list(options)
    answer = input(f"Enter choice ({keys[0]}-{keys[-1]}): ").strip()
    if answer not in options:
        raise InvalidChoiceError(f"Invalid choice '{answer}'. Exiting.")
    return options[answer][1]


def prompt_app_name() -> str:
    """
    Ask for the PM2 application name.

    The name becomes part of a file name, so it may not be empty or contain
    whitespace or path separators.

    Returns:
        The application name.

    Raises:
        InvalidChoiceError: If the name is not usable.
    """
    app_name = input("Enter a name for the PM2 app: ").strip()
    if not app_name or any(ch.isspace() or ch in "/\\" for ch in app_name) or app_name in (".", ".."):
        raise InvalidChoiceError(f"Invalid PM2 app name '{app_name}'. Exiting.")
    return app_name


def prompt_credentials(username_prompt: str, password_prompt: str) -> Tuple[str, str]:
    """
    Ask for a username and a password. The password is not echoed.

    Returns:
        A `(username, password)` tuple.
    """
    username = input(f"{username_prompt}: ").strip()
    password = getpass.getpass(f"{password_prompt}: ")
    return username, password
