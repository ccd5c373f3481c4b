from rich.pretty import pprint

from argotree import *

git = Action("git", short_descr="the stupid content tracker", shell=True, colorful=True)


@git.action(min_consume=1, max_consume=-1, arg_names=("<pathspec>",))
def add(state):
    """Add file contents to the index."""
    state.write("adding %s\n" % " ".join(state.args))


remote = Action("remote", parent=git, short_descr="Manage set of tracked repositories")


@remote.action(min_consume=2, arg_names=("<name>", "<url>"))
def add(state):  # NOQA: F-811
    """Add a remote named <name> for the repository at <url>."""
    state.write("remote %s -> %s\n" % state.args)


git.finalize()


if __name__ == '__main__':
    pprint(git)
    invoke(git)
