import os

from bs4 import BeautifulSoup

HTML_EXTENSIONS = (".html", ".htm")


def extract_text(html):
    """
    Extract the visible text of an HTML document.

    Parameters:
        html (str or bytes): the document

    Returns:
        str: the text with header, footer, nav, script and style removed
    """
    soup = BeautifulSoup(html, "html.parser")

    # boilerplate that repeats across pages of one site
    for tag in soup.find_all(['header', 'footer', 'nav']):
        tag.decompose()
    for tag in soup(['script', 'style']):
        tag.decompose()

    return soup.get_text()


def read_document(path):
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        content = f.read()
    if path.lower().endswith(HTML_EXTENSIONS):
        return extract_text(content)
    return content


def load_documents(path):
    """
    Load documents from a file or from every file under a directory.

    Parameters:
        path (str): a file or a directory

    Yields:
        tuple: (doc_id, text), doc_id being the path relative to a directory
            root or the file name, in sorted order
    """
    if os.path.isfile(path):
        yield os.path.basename(path), read_document(path)
        return

    paths = []
    for dirpath, dirnames, filenames in os.walk(path):
        for filename in filenames:
            paths.append(os.path.join(dirpath, filename))
    for file_path in sorted(paths):
        yield os.path.relpath(file_path, path), read_document(file_path)
