"""StepQA engine — core test-execution modules.

Provides the declarative UI test engine:
- ScopeResolver: narrows searches to a visible dialog or the main content region
- ElementLocator: resolves human-readable selector descriptors via strategy cascades
- FormControls: dropdowns (native and popup), checkboxes and radios
- TableEngine: row/cell resolution, cell assertions and row actions
- MenuNavigator: clicks through ``"A > B > C"`` menu paths
- CaptchaHandler: screenshots, recognizes and fills image captchas
- StepRunner: the step interpreter
- BrowserSession: Playwright browser/context/page lifecycle
- ReportGenerator: Markdown report generation from suite results
"""

from stepqa.engine.browser import BrowserSession
from stepqa.engine.captcha import CaptchaHandler, CaptchaSolver, build_captcha_solver
from stepqa.engine.errors import StepFailedError, StepQAError
from stepqa.engine.forms import FormControls
from stepqa.engine.interpreter import StepRunner
from stepqa.engine.menu import MenuNavigator
from stepqa.engine.report_generator import CaseReport, ReportGenerator, StepReport, SuiteResult
from stepqa.engine.scope import ScopeResolver
from stepqa.engine.selectors import ElementLocator, SelectorDescriptor
from stepqa.engine.steps import TestCase, TestStep, load_suite
from stepqa.engine.tables import TableEngine

__all__ = [
    "BrowserSession",
    "CaptchaHandler",
    "CaptchaSolver",
    "CaseReport",
    "ElementLocator",
    "FormControls",
    "MenuNavigator",
    "ReportGenerator",
    "ScopeResolver",
    "SelectorDescriptor",
    "StepFailedError",
    "StepQAError",
    "StepReport",
    "StepRunner",
    "SuiteResult",
    "TableEngine",
    "TestCase",
    "TestStep",
    "build_captcha_solver",
    "load_suite",
]
