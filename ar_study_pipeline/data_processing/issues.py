from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from ar_study_pipeline.data_processing.schemas import Issue

LOG_FILE_NAME = "ValidationLog.txt"
NO_ISSUES_LINE = "No issues found!"
END_OF_LOG_LINE = "END OF LOG"


class IssueLog:
    """
    Per-run collection of issues, grouped by table/stage name.

    Groups keep insertion order so the written log lists tables in the order
    they were processed. A group registered with `group()` and never filled
    still shows up (as "No issues found!").
    """

    def __init__(self) -> None:
        self._groups: Dict[str, List[Issue]] = {}

    def group(self, name: str) -> List[Issue]:
        return self._groups.setdefault(name, [])

    def add(self, group: str, issue: Issue) -> None:
        self.group(group).append(issue)

    def report(self, group: str, source: str, message: str, line: Optional[int] = None) -> Issue:
        issue = Issue(source=source, message=message, line=line)
        self.add(group, issue)
        return issue

    def extend(self, group: str, issues: Iterable[Issue]) -> None:
        self.group(group).extend(issues)

    def items(self) -> Iterator[Tuple[str, List[Issue]]]:
        return iter(self._groups.items())

    def __getitem__(self, group: str) -> List[Issue]:
        return self._groups[group]

    def __contains__(self, group: object) -> bool:
        return group in self._groups

    @property
    def total(self) -> int:
        return sum(len(v) for v in self._groups.values())

    def render(self) -> str:
        lines: List[str] = ["ISSUES LOG", "", ""]
        for name, issues in self._groups.items():
            lines.append(name)
            lines.append("")
            if not issues:
                lines.append(NO_ISSUES_LINE)
            else:
                lines.extend(str(i) for i in issues)
            lines.extend(["", ""])

        lines.append(f"Total issues found: {self.total}")
        lines.extend(["", ""])
        lines.append(END_OF_LOG_LINE)
        return "\n".join(lines) + "\n"

    def write(self, out_dir: Union[str, Path], file_name: str = LOG_FILE_NAME) -> Path:
        out_dir = Path(out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        out_path = out_dir / file_name
        out_path.write_text(self.render(), encoding="utf-8")
        return out_path
