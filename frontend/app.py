"""DiffDesk - Streamlit pull request review dashboard.

Thin client over GitHub and the review gateway. This file handles:
  - PAT login / logout (AuthContext kept in st.session_state)
  - Repository and open pull request browsing
  - Per-file split diff view next to the AI review chat
  - Live rendering of the streamed review as it arrives
"""

import requests
import streamlit as st

from frontend.auth import AuthContext, AuthError, login_with_token
from frontend.conversation import ChatMessage
from frontend.diff_view import extract_file_diff, split_diff
from frontend.github_client import GitHubError, PullRequestFile
from frontend.transcript import API_URL, TranscriptAssembler

# Config
HEALTH_ENDPOINT = f"{API_URL}/health"

STATUS_ICONS = {"added": "🟢", "modified": "🟡", "removed": "🔴", "renamed": "🔵"}

# Page setup
st.set_page_config(
    page_title="DiffDesk - AI Code Reviewer",
    layout="wide",
)

st.markdown("""
<style>
    .stChatMessage {
        padding: 0.75rem 1rem;
    }
    .status-badge {
        display: inline-block;
        padding: 2px 8px;
        border-radius: 12px;
        font-size: 0.75rem;
        font-weight: 600;
    }
    .status-ok { background: #d4edda; color: #155724; }
    .status-err { background: #f8d7da; color: #721c24; }
</style>
""", unsafe_allow_html=True)


def init_session():
    """Initialize session state on first load."""
    if "auth" not in st.session_state:
        st.session_state.auth = AuthContext()
    if "repo" not in st.session_state:
        st.session_state.repo = None  # (owner, name)
    if "pr_number" not in st.session_state:
        st.session_state.pr_number = None
    if "selected_file" not in st.session_state:
        st.session_state.selected_file = None
    if "transcript" not in st.session_state:
        st.session_state.transcript = None


def reset_views():
    """Drop everything tied to the current browsing position."""
    st.session_state.repo = None
    st.session_state.pr_number = None
    close_file()


def close_file():
    """Unmount the file view; its conversation goes with it."""
    st.session_state.selected_file = None
    st.session_state.transcript = None


def render_login(auth: AuthContext):
    st.title("DiffDesk")
    st.caption("Review pull requests with an AI code reviewer")

    with st.form("pat_login"):
        st.markdown("### Personal Access Token")
        token = st.text_input("GitHub token", type="password",
                              help="Needs the `repo` scope to read private repositories.")
        submitted = st.form_submit_button("Sign in", use_container_width=True)

    if submitted:
        try:
            with st.spinner("Verifying token..."):
                login_with_token(token, auth)
        except AuthError as e:
            st.error(f"[ERROR] {e}")
            return
        st.rerun()


def render_sidebar(auth: AuthContext):
    with st.sidebar:
        if auth.user:
            if auth.user.avatar_url:
                st.image(auth.user.avatar_url, width=48)
            st.markdown(f"Signed in as **{auth.user.login}**")

        try:
            health = requests.get(HEALTH_ENDPOINT, timeout=3).json()
            api_ok = health.get("status") == "healthy"
        except requests.RequestException:
            api_ok = False

        if api_ok:
            st.markdown('<span class="status-badge status-ok">* Review API Healthy</span>',
                        unsafe_allow_html=True)
        else:
            st.markdown('<span class="status-badge status-err">* Review API Unavailable</span>',
                        unsafe_allow_html=True)

        st.divider()
        if st.session_state.repo and st.button("Back to repositories", use_container_width=True):
            reset_views()
            st.rerun()

        if st.button("Sign out", use_container_width=True):
            auth.logout()
            reset_views()
            st.rerun()


def render_dashboard(auth: AuthContext):
    """Repository list, then the selected repository's open pull requests."""
    st.title("Repositories")
    github = auth.github()

    try:
        repos = github.list_repositories()
    except GitHubError as e:
        st.error(f"[ERROR] {e}. Please try again.")
        return

    if not repos:
        st.info("No repositories found for this account.")
        return

    labels = {r.full_name: r for r in repos}
    choice = st.selectbox("Repository", list(labels))
    repo = labels[choice]
    if repo.description:
        st.caption(repo.description)

    try:
        pulls = github.list_pull_requests(repo.owner.login, repo.name)
    except GitHubError as e:
        st.error(f"[ERROR] {e}. Please try again.")
        return

    st.subheader(f"Open pull requests ({len(pulls)})")
    if not pulls:
        st.info("No open pull requests.")
    for pr in pulls:
        cols = st.columns([6, 2, 2])
        cols[0].markdown(f"**#{pr.number}** {pr.title}")
        cols[1].caption(f"{pr.user.login} · {pr.updated_at:%b %d, %Y}")
        if cols[2].button("Review", key=f"pr-{repo.full_name}-{pr.number}"):
            st.session_state.repo = (repo.owner.login, repo.name)
            st.session_state.pr_number = pr.number
            close_file()
            st.rerun()


def render_pull_request(auth: AuthContext):
    owner, repo = st.session_state.repo
    number = st.session_state.pr_number
    github = auth.github()

    st.title(f"Pull Request #{number}")
    st.caption(f"{owner}/{repo}")

    try:
        pr = github.get_pull_request(owner, repo, number)
        files = github.list_pull_request_files(owner, repo, number)
    except GitHubError as e:
        st.error(f"[ERROR] {e}. Please try again.")
        return

    st.markdown(f"### {pr.title}  `{pr.state}`")
    st.caption(f"{pr.user.login} opened on {pr.created_at:%b %d, %Y} · "
               f"{pr.head.ref} → {pr.base.ref}")
    if pr.body:
        with st.expander("Description", expanded=False):
            st.markdown(pr.body)

    st.subheader(f"Files changed ({len(files)})")
    for f in files:
        cols = st.columns([6, 3, 1])
        cols[0].markdown(f"{STATUS_ICONS.get(f.status, '⚪')} `{f.filename}`")
        cols[1].caption(f"+{f.additions} / -{f.deletions} ({f.changes} changes)")
        if cols[2].button("Open", key=f"file-{f.filename}"):
            if open_file(auth, owner, repo, number, f):
                st.rerun()

    if st.session_state.selected_file:
        st.divider()
        render_file_review(auth)


def open_file(auth: AuthContext, owner: str, repo: str, number: int, file: PullRequestFile) -> bool:
    """Fetch the file's diff and mount a fresh review chat for it."""
    try:
        full_diff = auth.github().get_pull_request_diff(owner, repo, number)
    except GitHubError as e:
        st.error(f"[ERROR] {e}. Please try again.")
        return False

    file_diff = extract_file_diff(full_diff, file.filename) or (file.patch or "")
    st.session_state.selected_file = file.filename
    st.session_state.transcript = TranscriptAssembler(file_diff, auth, file_name=file.filename)
    return True


def render_file_review(auth: AuthContext):
    transcript: TranscriptAssembler = st.session_state.transcript
    header = st.columns([9, 1])
    header[0].markdown(f"#### 📄 {transcript.file_name}")
    if header[1].button("Close"):
        close_file()
        st.rerun()

    diff_col, chat_col = st.columns([2, 1])

    with diff_col:
        if transcript.code_diff:
            old, new = split_diff(transcript.code_diff)
            left, right = st.columns(2)
            left.caption("Original")
            left.code(old, language=None)
            right.caption("Modified")
            right.code(new, language=None)
        else:
            st.info("No diff available")

    with chat_col:
        render_chat(transcript)


def render_message(msg: ChatMessage):
    with st.chat_message(msg.role):
        st.caption(f"{'You' if msg.role == 'user' else 'AI Assistant'} · {msg.timestamp:%H:%M}")
        st.markdown(msg.content)


def render_chat(transcript: TranscriptAssembler):
    st.markdown("**AI Code Reviewer**")
    if not transcript.messages:
        st.caption("Ask me about this code! I can explain the changes, suggest improvements "
                   "and point out potential issues.")

    for msg in transcript.messages:
        render_message(msg)

    if transcript.error:
        banner = st.columns([9, 1])
        banner[0].error(f"[ERROR] {transcript.error}")
        if banner[1].button("Dismiss", key="dismiss-error"):
            transcript.dismiss_error()
            st.rerun()

    question = st.chat_input("Ask about the code changes...", disabled=transcript.is_busy)
    if question:
        send_message(transcript, question)


def send_message(transcript: TranscriptAssembler, question: str):
    """Send a question and render the reply as it streams in."""
    with st.chat_message("user"):
        st.markdown(question)

    with st.chat_message("assistant"):
        placeholder = st.empty()
        placeholder.markdown("_Thinking..._")

        def on_update(message: ChatMessage):
            placeholder.markdown(message.content)

        reply = transcript.send(question, on_update=on_update)
        if reply is None:
            placeholder.empty()

    st.rerun()


def main():
    """Run the Streamlit dashboard."""
    init_session()
    auth: AuthContext = st.session_state.auth

    if not auth.is_authenticated:
        render_login(auth)
        return

    render_sidebar(auth)
    if st.session_state.repo and st.session_state.pr_number:
        render_pull_request(auth)
    else:
        render_dashboard(auth)


if __name__ == "__main__":
    main()
