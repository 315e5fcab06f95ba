"""Command safety validation.

Every cleanup command passes through :func:`validate_command` immediately
before it runs. Validation is a pure function of the command text, the
current whitelist snapshot, the rule set and the default policy.

Evaluation order:

1. An empty command is rejected.
2. Deny rules are always evaluated; any match rejects.
3. A command containing a whitelisted path (as a substring) is rejected.
4. An allow rule match approves.
5. Otherwise the default policy decides.

Allow rules only ever match a single, simple command: anything with
chaining, pipes, substitution or redirection falls through to the
default policy.
"""

from __future__ import annotations

import fnmatch
import logging
import posixpath
import re
import shlex
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import ClassVar

from reclaimctl.core.errors import ValidationRejected
from reclaimctl.models.validation import ValidationResult
from reclaimctl.models.whitelist import WhitelistEntry
from reclaimctl.snapshots.classifier import OS_UPDATE_MARKER

logger = logging.getLogger(__name__)


class RuleKind(str, Enum):
    """Whether a rule approves or rejects the commands it matches."""

    ALLOW = "allow"
    DENY = "deny"


class DefaultPolicy(str, Enum):
    """Outcome for commands matched by neither an allow nor a deny rule."""

    ALLOW = "allow"
    DENY = "deny"


# =============================================================================
# Command parsing
# =============================================================================

_OPERATOR_CHARS = ";&|<>()"
_COMPOUND_MARKERS = (";", "&", "|", "<", ">", "`", "$(", "\n")
_ASSIGNMENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*=")
_GLOB_CHARS = frozenset("*?[")

# Programs that run another program given as their arguments.
WRAPPER_PROGRAMS = frozenset(
    {"env", "nohup", "command", "exec", "time", "nice", "xargs", "sudo", "doas", "caffeinate"}
)

DELETION_PROGRAMS = frozenset({"rm", "rmdir", "unlink", "shred", "srm"})

HARMLESS_SINKS = frozenset({"/dev/null", "/dev/stdout", "/dev/stderr"})


@dataclass(frozen=True, slots=True)
class CommandSegment:
    """One simple command inside a (possibly compound) command line.

    Attributes:
        program: Basename of the program, or None for an empty segment.
        args: Arguments following the program.
    """

    program: str | None
    args: tuple[str, ...] = ()

    @property
    def operands(self) -> tuple[str, ...]:
        """Arguments that are not options."""
        return tuple(arg for arg in self.args if not arg.startswith("-"))

    @property
    def options(self) -> tuple[str, ...]:
        return tuple(arg for arg in self.args if arg.startswith("-"))


@dataclass(frozen=True, slots=True)
class ParsedCommand:
    """Tokenized view of a command line used by the rules.

    Attributes:
        text: Original command text.
        tokens: Shell-style tokens, operators included.
        segments: Simple commands separated by operators.
        is_compound: Whether the command chains, pipes, substitutes or
            redirects (or could not be tokenized).
        home: Home directory used for path normalization.
    """

    text: str
    tokens: tuple[str, ...]
    segments: tuple[CommandSegment, ...]
    is_compound: bool
    home: str

    @property
    def single(self) -> CommandSegment | None:
        """The only segment of a simple command, or None for compound commands."""
        if self.is_compound or len(self.segments) != 1:
            return None
        return self.segments[0]

    def deletion_targets(self) -> list[str]:
        """Normalized paths that deletion programs in this command operate on."""
        targets: list[str] = []
        for segment in self.segments:
            if segment.program in DELETION_PROGRAMS:
                targets.extend(segment.operands)
            elif segment.program == "find" and any(
                arg in ("-delete", "-exec", "-execdir") for arg in segment.args
            ):
                targets.extend(_find_roots(segment.args))
        return [normalize_path(target, self.home) for target in targets]

    def redirect_targets(self) -> list[str]:
        """Normalized paths written through output redirection."""
        targets: list[str] = []
        for index, token in enumerate(self.tokens[:-1]):
            if token.endswith(">") and self.tokens[index + 1] not in HARMLESS_SINKS:
                targets.append(normalize_path(self.tokens[index + 1], self.home))
        return targets


def _is_operator(token: str) -> bool:
    return bool(token) and all(char in _OPERATOR_CHARS for char in token)


def _tokenize(text: str) -> tuple[list[str], bool]:
    """Split a command line into tokens.

    Returns:
        Tuple of (tokens, tokenized_cleanly).
    """
    # Newlines and backticks both start a new command.
    prepared = text.replace("\n", " ; ").replace("`", " ; ")
    lexer = shlex.shlex(prepared, posix=True, punctuation_chars=_OPERATOR_CHARS)
    lexer.whitespace_split = True
    try:
        return list(lexer), True
    except ValueError:
        logger.debug("Could not tokenize command, falling back to whitespace split: %s", text)
        return prepared.split(), False


def _split_segment(tokens: list[str]) -> CommandSegment:
    index = 0
    while index < len(tokens) and _ASSIGNMENT.match(tokens[index]):
        index += 1

    while index < len(tokens) and posixpath.basename(tokens[index]) in WRAPPER_PROGRAMS:
        index += 1
        while index < len(tokens) and (tokens[index].startswith("-") or tokens[index].isdigit()):
            index += 1
        while index < len(tokens) and _ASSIGNMENT.match(tokens[index]):
            index += 1

    if index >= len(tokens):
        return CommandSegment(program=None)
    return CommandSegment(
        program=posixpath.basename(tokens[index]),
        args=tuple(tokens[index + 1 :]),
    )


def parse_command(command: str, home: str | None = None) -> ParsedCommand:
    """Tokenize a command line into segments.

    Args:
        command: Command text.
        home: Home directory for path normalization (default: current user's).

    Returns:
        ParsedCommand view of the command.
    """
    home_dir = home if home is not None else str(Path.home())
    tokens, clean = _tokenize(command)

    segments: list[CommandSegment] = []
    current: list[str] = []
    for token in tokens:
        if _is_operator(token):
            if current:
                segments.append(_split_segment(current))
            current = []
        elif token == "$":
            # "$(" tokenizes as "$" followed by "(".
            continue
        else:
            current.append(token)
    if current:
        segments.append(_split_segment(current))

    is_compound = not clean or any(marker in command for marker in _COMPOUND_MARKERS)
    return ParsedCommand(
        text=command,
        tokens=tuple(tokens),
        segments=tuple(segments),
        is_compound=is_compound,
        home=home_dir,
    )


def _find_roots(args: tuple[str, ...]) -> list[str]:
    roots: list[str] = []
    for arg in args:
        if arg.startswith(("-", "(", "!")):
            break
        roots.append(arg)
    return roots or ["."]


def normalize_path(path: str, home: str) -> str:
    """Normalize a path token for comparison.

    Home directory spellings (``$HOME``, ``${HOME}``, the expanded path)
    become ``~``, repeated slashes collapse, and ``.``/``..`` components
    are resolved lexically.

    Args:
        path: Path token.
        home: Home directory.

    Returns:
        Normalized path.
    """
    result = path
    for prefix in ("${HOME}", "$HOME"):
        if result == prefix or result.startswith(prefix + "/"):
            result = "~" + result[len(prefix) :]
            break
    home = home.rstrip("/")
    if home and (result == home or result.startswith(home + "/")):
        result = "~" + result[len(home) :]

    result = re.sub(r"/{2,}", "/", result)
    if not result:
        return result
    return posixpath.normpath(result)


def has_parent_reference(path: str) -> bool:
    """Whether a path token contains a ``..`` component."""
    return ".." in path.split("/")


def is_within(path: str, root: str) -> bool:
    """Whether a normalized path lies strictly inside root."""
    return path.startswith(root.rstrip("/") + "/")


def is_at_or_within(path: str, root: str) -> bool:
    return path == root or is_within(path, root)


def _glob_reaches(pattern: str, paths: Iterable[str]) -> str | None:
    """Return the first of paths that a glob pattern would match."""
    if not _GLOB_CHARS.intersection(pattern):
        return None
    for candidate in paths:
        if fnmatch.fnmatchcase(candidate, pattern):
            return candidate
    return None


# =============================================================================
# Rules
# =============================================================================


class SafetyRule(ABC):
    """A single, individually testable validation rule.

    Attributes:
        rule_id: Stable identifier reported in validation results.
        kind: Whether a match approves or rejects.
        description: Human-readable summary of what the rule matches.
    """

    rule_id: ClassVar[str]
    kind: ClassVar[RuleKind]
    description: ClassVar[str]

    @abstractmethod
    def match(self, command: ParsedCommand) -> str | None:
        """Check the command against this rule.

        Returns:
            A short description of what matched, or None if the rule does
            not apply.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


# --- Deny rules ---------------------------------------------------------------

ROOT_TARGETS = frozenset({"/", "/*", "~", "~/*", "*", ".", "..", "./*", "../*", "/.*", "~/.*"})

# Deleting these or anything below them is rejected.
CRITICAL_PREFIXES: tuple[str, ...] = (
    "/System",
    "/usr",
    "/bin",
    "/sbin",
    "/etc",
    "/var",
    "/private",
    "/Library",
    "/Applications",
    "/boot",
    "/dev",
    "/lib",
    "/lib64",
    "/opt",
    "/proc",
    "/sys",
    "/root",
    "~/Documents",
    "~/Desktop",
    "~/Pictures",
    "~/Movies",
    "~/Music",
    "~/Library/Application Support",
    "~/Library/Keychains",
    "~/.ssh",
    "~/.gnupg",
)

# Deleting these directories themselves is rejected; their contents are
# covered by the per-user rules above.
CRITICAL_EXACT: tuple[str, ...] = ("/Users", "/home", "/Volumes", "~/Library")

# Parents whose direct children are user home directories.
HOME_PARENTS: tuple[str, ...] = ("/Users", "/home")


def is_critical_path(path: str) -> bool:
    """Whether a normalized path is an OS-critical or user-critical location."""
    if any(is_at_or_within(path, prefix) for prefix in CRITICAL_PREFIXES):
        return True
    if path in CRITICAL_EXACT:
        return True
    return any(posixpath.dirname(path) == parent for parent in HOME_PARENTS)


class DenyRootPath(SafetyRule):
    rule_id = "deny_root_path"
    kind = RuleKind.DENY
    description = "Deletes the filesystem root, the home directory or the working directory"

    def match(self, command: ParsedCommand) -> str | None:
        for target in command.deletion_targets():
            if target in ROOT_TARGETS:
                return target
        return None


class DenyCriticalPath(SafetyRule):
    rule_id = "deny_critical_path"
    kind = RuleKind.DENY
    description = "Deletes or overwrites a critical system or user path"

    def match(self, command: ParsedCommand) -> str | None:
        candidates = (*CRITICAL_PREFIXES, *CRITICAL_EXACT)
        for target in (*command.deletion_targets(), *command.redirect_targets()):
            if is_critical_path(target):
                return target
            reached = _glob_reaches(target, candidates)
            if reached is not None:
                return f"{target} (matches {reached})"
        return None


class DenyPrivilegeEscalation(SafetyRule):
    rule_id = "deny_privilege_escalation"
    kind = RuleKind.DENY
    description = "Requests elevated privileges"

    ESCALATION_PROGRAMS: ClassVar[frozenset[str]] = frozenset({"sudo", "doas", "pkexec"})

    def match(self, command: ParsedCommand) -> str | None:
        for token in command.tokens:
            if posixpath.basename(token) in self.ESCALATION_PROGRAMS:
                return token
        for segment in command.segments:
            if segment.program == "su":
                return "su"
        if "administrator privileges" in command.text.lower():
            return "administrator privileges"
        return None


_NUMERIC_MODE = re.compile(r"^[0-7]{3,4}$")
_SYMBOLIC_CLAUSE = re.compile(r"^([ugoa]*)([+=])([rwxXst]*)$")


def is_dangerous_mode(mode: str) -> bool:
    """Whether a chmod mode grants world write access or sets setuid/setgid."""
    if _NUMERIC_MODE.match(mode):
        others = int(mode[-1])
        special = int(mode[:-3] or "0")
        return bool(others & 2) or bool(special & 6)
    for clause in mode.split(","):
        match = _SYMBOLIC_CLAUSE.match(clause)
        if match is None:
            continue
        who, _, perms = match.groups()
        if "s" in perms:
            return True
        if "w" in perms and (not who or "o" in who or "a" in who):
            return True
    return False


class DenyPermissionChange(SafetyRule):
    rule_id = "deny_permission_change"
    kind = RuleKind.DENY
    description = "Makes files world-writable or setuid/setgid"

    def match(self, command: ParsedCommand) -> str | None:
        for segment in command.segments:
            if segment.program != "chmod":
                continue
            for arg in segment.operands:
                if is_dangerous_mode(arg):
                    return f"chmod {arg}"
        return None


class DenyOwnershipChange(SafetyRule):
    rule_id = "deny_ownership_change"
    kind = RuleKind.DENY
    description = "Hands files to a privileged owner or group"

    PRIVILEGED_OWNERS: ClassVar[frozenset[str]] = frozenset({"root", "0"})
    PRIVILEGED_GROUPS: ClassVar[frozenset[str]] = frozenset({"root", "wheel", "admin", "0"})

    def match(self, command: ParsedCommand) -> str | None:
        for segment in command.segments:
            operands = segment.operands
            if not operands:
                continue
            spec = operands[0]
            if segment.program == "chown":
                owner, _, group = spec.replace(".", ":", 1).partition(":")
                if owner in self.PRIVILEGED_OWNERS or group in self.PRIVILEGED_GROUPS:
                    return f"chown {spec}"
            elif segment.program == "chgrp" and spec in self.PRIVILEGED_GROUPS:
                return f"chgrp {spec}"
        return None


class DenyDiskDestruction(SafetyRule):
    rule_id = "deny_disk_destruction"
    kind = RuleKind.DENY
    description = "Formats, erases or repartitions a disk"

    DESTRUCTIVE_PROGRAMS: ClassVar[frozenset[str]] = frozenset({"wipefs", "fdisk", "sfdisk", "gpt"})
    DISKUTIL_VERBS: ClassVar[tuple[str, ...]] = ("erase", "zero", "partition", "reformat")

    def match(self, command: ParsedCommand) -> str | None:
        for segment in command.segments:
            program = segment.program
            if program is None:
                continue
            if program.startswith(("mkfs", "newfs")) or program in self.DESTRUCTIVE_PROGRAMS:
                return program
            if program == "dd":
                for arg in segment.args:
                    if arg.startswith("of=/dev/"):
                        return f"dd {arg}"
            if program == "diskutil":
                for arg in segment.args:
                    if arg.lower().startswith(self.DISKUTIL_VERBS):
                        return f"diskutil {arg}"
        return None


class DenyProtectedSnapshotDeletion(SafetyRule):
    rule_id = "deny_protected_snapshot_deletion"
    kind = RuleKind.DENY
    description = "Deletes a snapshot that is managed by the operating system"

    def match(self, command: ParsedCommand) -> str | None:
        for segment in command.segments:
            if segment.program not in ("tmutil", "diskutil"):
                continue
            if not any("delete" in arg.lower() for arg in segment.args):
                continue
            for arg in segment.args:
                if OS_UPDATE_MARKER in arg:
                    return arg
        return None


# --- Allow rules --------------------------------------------------------------

_SNAPSHOT_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}-\d{6}$")
_RM_FLAGS = re.compile(r"^-[rRfvdI]+$")


class AllowSnapshotThinning(SafetyRule):
    rule_id = "allow_snapshot_thinning"
    kind = RuleKind.ALLOW
    description = "Thins or deletes local Time Machine snapshots with bounded arguments"

    def match(self, command: ParsedCommand) -> str | None:
        segment = command.single
        if segment is None or segment.program != "tmutil" or not segment.args:
            return None
        verb, rest = segment.args[0], segment.args[1:]

        if verb == "thinlocalsnapshots":
            if not rest or len(rest) > 3 or not rest[0].startswith("/"):
                return None
            if len(rest) >= 2 and not rest[1].isdigit():
                return None
            if len(rest) == 3 and rest[2] not in ("1", "2", "3", "4"):
                return None
            return "tmutil thinlocalsnapshots"

        if verb == "deletelocalsnapshots":
            if len(rest) == 1 and _SNAPSHOT_DATE.match(rest[0]):
                return "tmutil deletelocalsnapshots"
        return None


class SubtreeDeletionRule(SafetyRule):
    """Approves ``rm`` confined strictly inside a set of directories."""

    roots: ClassVar[tuple[str, ...]]

    def match(self, command: ParsedCommand) -> str | None:
        segment = command.single
        if segment is None or segment.program != "rm":
            return None

        options = [option for option in segment.options if option != "--"]
        if any(not _RM_FLAGS.match(option) for option in options):
            return None

        targets = segment.operands
        if not targets:
            return None

        for target in targets:
            if has_parent_reference(target):
                return None
            normalized = normalize_path(target, command.home)
            if not any(is_within(normalized, root) for root in self.roots):
                return None
        return " ".join(targets)


class AllowCacheSubtree(SubtreeDeletionRule):
    rule_id = "allow_cache_subtree"
    kind = RuleKind.ALLOW
    description = "Deletes inside the user cache directories"
    roots = ("~/Library/Caches", "~/.cache")


class AllowTrashSubtree(SubtreeDeletionRule):
    rule_id = "allow_trash_subtree"
    kind = RuleKind.ALLOW
    description = "Deletes inside the user trash"
    roots = ("~/.Trash", "~/.local/share/Trash")


class AllowDownloadsSubtree(SubtreeDeletionRule):
    rule_id = "allow_downloads_subtree"
    kind = RuleKind.ALLOW
    description = "Deletes inside the user downloads directory"
    roots = ("~/Downloads",)


class AllowInformational(SafetyRule):
    rule_id = "allow_informational"
    kind = RuleKind.ALLOW
    description = "Prints an informational message"

    def match(self, command: ParsedCommand) -> str | None:
        segment = command.single
        if segment is not None and segment.program == "echo":
            return "echo"
        return None


DEFAULT_RULES: tuple[SafetyRule, ...] = (
    DenyRootPath(),
    DenyCriticalPath(),
    DenyPrivilegeEscalation(),
    DenyPermissionChange(),
    DenyOwnershipChange(),
    DenyDiskDestruction(),
    DenyProtectedSnapshotDeletion(),
    AllowSnapshotThinning(),
    AllowCacheSubtree(),
    AllowTrashSubtree(),
    AllowDownloadsSubtree(),
    AllowInformational(),
)


# =============================================================================
# Whitelist
# =============================================================================


def whitelist_variants(path: str, home: str) -> list[str]:
    """Spellings of a whitelisted path to look for in command text.

    Args:
        path: Whitelisted path.
        home: Home directory.

    Returns:
        Distinct spellings, or an empty list for a blank path.
    """
    stripped = path.strip()
    if not stripped:
        return []
    if stripped != "/":
        stripped = stripped.rstrip("/") or "/"

    home = home.rstrip("/")
    variants = [stripped]
    if stripped == "~" or stripped.startswith("~/"):
        rest = stripped[1:]
        variants.extend([home + rest, "$HOME" + rest, "${HOME}" + rest])
    elif home and (stripped == home or stripped.startswith(home + "/")):
        rest = stripped[len(home) :]
        variants.extend(["~" + rest, "$HOME" + rest, "${HOME}" + rest])
    return list(dict.fromkeys(variants))


def find_whitelisted_path(
    command: str,
    whitelist: Iterable[WhitelistEntry],
    home: str,
) -> WhitelistEntry | None:
    """Return the first whitelist entry whose path appears in the command."""
    for entry in whitelist:
        for variant in whitelist_variants(entry.path, home):
            if variant in command:
                return entry
    return None


# =============================================================================
# Validation
# =============================================================================

EMPTY_COMMAND_RULE = "empty_command"
WHITELIST_RULE = "whitelist"
DEFAULT_POLICY_RULE = "default_policy"


def validate_command(
    command: str,
    whitelist: Iterable[WhitelistEntry],
    *,
    rules: Sequence[SafetyRule] = DEFAULT_RULES,
    default_policy: DefaultPolicy = DefaultPolicy.DENY,
    home: str | None = None,
) -> ValidationResult:
    """Decide whether a command may run.

    Args:
        command: Command text.
        whitelist: Snapshot of the current protected paths.
        rules: Rule set to evaluate.
        default_policy: Outcome for commands no rule matches.
        home: Home directory (default: current user's).

    Returns:
        ValidationResult naming the deciding rule.
    """
    if not command or not command.strip():
        return ValidationResult.reject("Command is empty", rule=EMPTY_COMMAND_RULE)

    parsed = parse_command(command, home)

    for rule in rules:
        if rule.kind is not RuleKind.DENY:
            continue
        detail = rule.match(parsed)
        if detail is not None:
            return ValidationResult.reject(f"{rule.description} ({detail})", rule=rule.rule_id)

    entry = find_whitelisted_path(command, whitelist, parsed.home)
    if entry is not None:
        return ValidationResult.reject(
            f"Command touches whitelisted path {entry.path}",
            rule=WHITELIST_RULE,
        )

    for rule in rules:
        if rule.kind is RuleKind.ALLOW and rule.match(parsed) is not None:
            return ValidationResult.approve(rule=rule.rule_id)

    if default_policy is DefaultPolicy.ALLOW:
        return ValidationResult.approve(rule=DEFAULT_POLICY_RULE)
    return ValidationResult.reject(
        "Command does not match any known-safe cleanup pattern",
        rule=DEFAULT_POLICY_RULE,
    )


class CommandSafetyValidator:
    """Validates cleanup commands against a fixed rule set.

    Holds no state between calls; the whitelist is passed in on every
    validation so the latest protected paths always apply.
    """

    def __init__(
        self,
        rules: Sequence[SafetyRule] = DEFAULT_RULES,
        default_policy: DefaultPolicy = DefaultPolicy.DENY,
        home: str | None = None,
    ) -> None:
        self.rules = tuple(rules)
        self.default_policy = default_policy
        self.home = home

    def validate(self, command: str, whitelist: Iterable[WhitelistEntry]) -> ValidationResult:
        """Validate a command against the rules and the given whitelist."""
        result = validate_command(
            command,
            whitelist,
            rules=self.rules,
            default_policy=self.default_policy,
            home=self.home,
        )
        if result.is_valid:
            logger.debug("Approved by %s: %s", result.rule, command)
        else:
            logger.info("Rejected by %s: %s (%s)", result.rule, command, result.reason)
        return result

    def ensure_safe(self, command: str, whitelist: Iterable[WhitelistEntry]) -> None:
        """Validate a command and raise if it is rejected.

        Raises:
            ValidationRejected: If the command may not run.
        """
        result = self.validate(command, whitelist)
        if not result.is_valid:
            raise ValidationRejected(command, result.reason or "rejected", rule=result.rule)
