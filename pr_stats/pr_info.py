"""Print metadata, changed files, review comments and diff of a single PR."""

from .api_client import GitHubAPIClient
from .output import BOLD, CYAN, MAGENTA, RESET


def _label(text: str, use_color: bool) -> str:
    return f"{CYAN}{text}{RESET}" if use_color else text


def show_pr_info(
    api_client: GitHubAPIClient,
    owner: str,
    repo: str,
    number: int,
    show_comments: bool = False,
    show_diffs: bool = False,
    use_color: bool = True
):
    """Fetch one pull request and print it.

    Args:
        api_client: Client used for GitHub requests
        owner: Repository owner
        repo: Repository name
        number: Pull request number
        show_comments: Also print review comments
        show_diffs: Also print the unified diff
        use_color: Whether to emit ANSI color codes

    Raises:
        requests.HTTPError: If any request fails
    """
    pr = api_client.get_pull_request(owner, repo, number)
    files = api_client.list_pull_request_files(owner, repo, number)
    comments = api_client.list_review_comments(owner, repo, number) if show_comments else []
    diff = api_client.get_pull_request_diff(owner, repo, number) if show_diffs else ''

    title = f"PR #{pr.get('number', number)}: {pr.get('title', '')}"
    print(f"{BOLD}{title}{RESET}" if use_color else title)
    print(_label("Author:", use_color), (pr.get('user') or {}).get('login', 'unknown'))
    print(_label("Created at:", use_color), pr.get('created_at'))
    print(_label("Merged at:", use_color), pr.get('merged_at') or '(not merged)')
    print(_label("Branch:", use_color), (pr.get('head') or {}).get('ref'))
    print(_label("Description:", use_color), pr.get('body') or "(no description)")
    print(_label("Diff URL:", use_color), pr.get('diff_url'))

    if show_diffs and diff:
        marker = f"{MAGENTA}%s{RESET}" if use_color else "%s"
        print(marker % "\n--- DIFF ---\n")
        print(diff)
        print(marker % "\n--- END DIFF ---\n")

    print(_label("Changed files:", use_color))
    for file in files:
        print(f"- {file['filename']} ({file.get('changes', 0)} changes)")

    if show_comments:
        print(_label("Comments:", use_color))
        if not comments:
            print("(no comments)")
        for comment in comments:
            print(f"- {(comment.get('user') or {}).get('login', 'unknown')}: {comment.get('body', '')}")
