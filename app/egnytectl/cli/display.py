"""Shared Rich display functions for drive actions and status.

Provides table builders and summary printers for planned actions,
execution results and the per-mapping status view.
"""

from rich.markup import escape
from rich.table import Table

from egnytectl.core.reconciler import MappingStatus
from egnytectl.models.action import Action, ActionResult, ActionType
from egnytectl.models.mount import MountState
from egnytectl.utils.formatting import console, print_success

_ACTION_STYLES: dict[ActionType, str] = {
    ActionType.MOUNT: "mounted",
    ActionType.UNMOUNT: "unmounted",
    ActionType.REMOUNT: "remounted",
    ActionType.FORCE_UNMOUNT: "warning",
}

_STATE_STYLES: dict[MountState, str] = {
    MountState.UNMOUNTED: "muted",
    MountState.MOUNTED_CORRECT: "mounted",
    MountState.MOUNTED_FOREIGN: "warning",
    MountState.MOUNTED_DISCONNECTED: "unmounted",
}


def _styled_action(action_type: ActionType) -> str:
    style = _ACTION_STYLES[action_type]
    return f"[{style}]{action_type.value}[/{style}]"


def _styled_state(state: MountState | None) -> str:
    if state is None:
        return "[error]unknown[/error]"
    style = _STATE_STYLES[state]
    return f"[{style}]{state.value}[/{style}]"


def create_actions_table(actions: list[Action], dry_run: bool = False) -> Table:
    """Create a Rich table displaying planned actions.

    Args:
        actions: List of actions to display.
        dry_run: Whether this is a dry-run (changes table title).

    Returns:
        Rich Table configured for action display.
    """
    title = "Planned Actions (Dry Run)" if dry_run else "Planned Actions"

    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Action", width=13)
    table.add_column("Drive", no_wrap=True)
    table.add_column("Name", no_wrap=True)
    table.add_column("Remote path")
    table.add_column("Reason")

    for action in actions:
        table.add_row(
            _styled_action(action.action_type),
            action.mapping.mount_point,
            action.mapping.drive_name,
            action.mapping.drive_path,
            f"[muted]{action.reason or ''}[/muted]",
        )

    return table


def create_results_table(
    results: list[ActionResult], unobserved: list[MappingStatus] | None = None
) -> Table:
    """Create a Rich table displaying action results.

    Successful results show "OK" with the step summary; failed results show
    "FAIL" with the error message. Mappings whose mount point could not be
    observed are listed as failures without an action.
    """
    table = Table(
        title="Results",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Status", width=8, justify="center")
    table.add_column("Action", width=13)
    table.add_column("Drive", no_wrap=True)
    table.add_column("State", no_wrap=True)
    table.add_column("Message")

    for result in results:
        if result.success:
            status = "[success]OK[/success]"
            message = result.message or ""
        else:
            status = "[error]FAIL[/error]"
            message = result.error or "Unknown error"

        table.add_row(
            status,
            result.action.action_type.value,
            f"{result.action.mapping.mount_point} {result.action.mapping.drive_name}",
            _styled_state(result.final_state),
            f"[muted]{escape(message)}[/muted]",
        )

    for skipped in unobserved or []:
        table.add_row(
            "[error]FAIL[/error]",
            "-",
            f"{skipped.mapping.mount_point} {skipped.mapping.drive_name}",
            _styled_state(None),
            f"[muted]{escape(f'could not observe: {skipped.error}')}[/muted]",
        )

    return table


def create_status_table(statuses: list[MappingStatus]) -> Table:
    """Create a Rich table of observed state and planned action per mapping."""
    table = Table(
        title="Drive Status",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Drive", no_wrap=True)
    table.add_column("Name", no_wrap=True)
    table.add_column("Group")
    table.add_column("Authorized", justify="center")
    table.add_column("State", no_wrap=True)
    table.add_column("Planned")

    for status in statuses:
        mapping = status.mapping
        group = "[muted](always)[/muted]" if mapping.always_authorized else mapping.group_key
        authorized = "[success]yes[/success]" if status.authorized else "[muted]no[/muted]"
        if status.error:
            state = "[error]error[/error]"
            planned = f"[error]{escape(status.error)}[/error]"
        else:
            state = _styled_state(status.observed.state if status.observed else None)
            planned = _styled_action(status.action.action_type) if status.action else "-"
        table.add_row(mapping.mount_point, mapping.drive_name, group, authorized, state, planned)

    return table


def print_actions_summary(actions: list[Action]) -> None:
    """Print counts of planned actions by type.

    If no actions are provided, produces no output.
    """
    parts: list[str] = []
    for action_type in ActionType:
        count = sum(1 for a in actions if a.action_type == action_type)
        if count:
            style = _ACTION_STYLES[action_type]
            parts.append(f"[{style}]{count} to {action_type.value}[/{style}]")

    if parts:
        summary = ", ".join(parts)
        console.print(f"\nSummary: {summary}")


def print_results_summary(
    results: list[ActionResult], unobserved: list[MappingStatus] | None = None
) -> None:
    """Print a summary of action results.

    Unobserved mappings count as failures.
    """
    success_count = sum(1 for r in results if r.success)
    fail_count = sum(1 for r in results if r.failed) + len(unobserved or [])

    if fail_count == 0:
        print_success(f"All {success_count} action(s) completed successfully.")
    else:
        console.print(
            f"\n[success]{success_count} succeeded[/success], [error]{fail_count} failed[/error]"
        )
