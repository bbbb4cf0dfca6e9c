from invoke import task


@task
def lint(c):
    c.run("ruff check .")


@task
def format_check(c):
    c.run("ruff format --check .")


@task
def test(c):
    c.run("pytest")


@task
def simulate(c, votes=300, noise=0.1):
    c.run(f"photo-ranker simulate --votes {votes} --noise {noise}")


@task
def ci(c):
    lint(c)
    format_check(c)
    test(c)
