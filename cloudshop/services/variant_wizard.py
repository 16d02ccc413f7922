"""Four-step wizard that turns a template (or hand-entered values) into
variant rows for one product.

    1. choose a template, or start a custom value list
    2. name the group and edit labels / value codes
    3. set price adjustments and stock, optionally in bulk
    4. confirm; one create call per value, in order

Persistence is injected at submit time as a callable taking one record
dict. It must raise VariantCreateError (or any exception) on failure; the
first failure stops the run and nothing already written is undone.
"""
import copy
import logging

from cloudshop.services import variant_templates
from cloudshop.services.variant_templates import slugify_label, to_number

logger = logging.getLogger(__name__)

WIZARD_STEPS = (
    {"id": 1, "title": "Choose template", "description": "Pick a ready-made template or start a custom one"},
    {"id": 2, "title": "Customize values", "description": "Edit labels, value codes and order"},
    {"id": 3, "title": "Pricing & stock", "description": "Adjust prices and stock quantities"},
    {"id": 4, "title": "Confirm", "description": "Review and create the variants"},
)

LAST_STEP = len(WIZARD_STEPS)
VALUE_FIELDS = {"label", "value", "price_adjustment", "stock_quantity", "order"}
DEFAULT_STOCK = 50
SUBMIT_FALLBACK_MESSAGE = "Could not create variants"


class WizardError(ValueError):
    """The wizard was driven out of sequence."""


class VariantCreateError(Exception):
    """A persistence call refused a variant record."""

    def __init__(self, message=""):
        super().__init__(message)
        self.message = message


class SubmissionStep:
    PENDING = "pending"
    DONE = "done"
    FAILED = "failed"

    def __init__(self, record):
        self.record = record
        self.status = self.PENDING
        self.error = None

    def __repr__(self):
        return f"<SubmissionStep {self.record['variant_value']} [{self.status}]>"


class SubmissionSaga:
    """Ordered list of pending creates with a tracked outcome for each.

    run() walks the steps that are not done yet, so calling it again after
    a failure resumes at the failed step. There is no compensation.
    """

    def __init__(self, records):
        self.steps = [SubmissionStep(record) for record in records]

    @property
    def done(self):
        return [s for s in self.steps if s.status == SubmissionStep.DONE]

    @property
    def failed_step(self):
        for step in self.steps:
            if step.status == SubmissionStep.FAILED:
                return step
        return None

    def run(self, create_variant):
        for step in self.steps:
            if step.status == SubmissionStep.DONE:
                continue
            try:
                create_variant(step.record)
            except VariantCreateError as e:
                logger.warning(
                    "Variant %s rejected: %s", step.record["variant_value"], e.message
                )
                step.status = SubmissionStep.FAILED
                step.error = e.message or SUBMIT_FALLBACK_MESSAGE
                return False
            except Exception as e:
                logger.exception(
                    "Error creating variant %s", step.record["variant_value"]
                )
                step.status = SubmissionStep.FAILED
                step.error = str(e) or SUBMIT_FALLBACK_MESSAGE
                return False
            step.status = SubmissionStep.DONE
            step.error = None
        return True


class SubmissionResult:
    def __init__(self, success, message, created=0, total=0, failed_step=None):
        self.success = success
        self.message = message
        self.created = created
        self.total = total
        self.failed_step = failed_step

    def __repr__(self):
        state = "ok" if self.success else "failed"
        return f"<SubmissionResult {state} {self.created}/{self.total}>"


def _blank_value(order):
    return {
        "label": "",
        "value": "",
        "price_adjustment": 0,
        "stock_quantity": DEFAULT_STOCK,
        "order": order,
    }


def _plain_number(number):
    return int(number) if number.is_integer() else number


def _is_blank(text):
    return not text or not str(text).strip()


class VariantWizard:
    def __init__(self, catalog, product_id, product_name=""):
        self.catalog = catalog
        self.product_id = product_id
        self.product_name = product_name
        self.is_open = False
        self._reset()

    def _reset(self):
        self.current_step = 1
        self.selected_template = None
        self.custom_mode = False
        self.variant_name = ""
        self.custom_values = []
        self.is_submitting = False
        self.last_submission = None

    # -- lifecycle ----------------------------------------------------------

    def open(self):
        """Start a fresh session; anything from a previous run is dropped."""
        self._reset()
        self.is_open = True

    def close(self):
        self.is_open = False

    # -- step 1 -------------------------------------------------------------

    def select_template(self, template_id):
        template = self.catalog.get_template_by_id(template_id)
        if template is None:
            raise WizardError(f"Unknown template: {template_id}")
        self.selected_template = template
        self.custom_mode = False
        self.variant_name = template["name"]
        self.custom_values = copy.deepcopy(template["default_values"])

    def use_custom_template(self):
        self.custom_mode = True
        self.selected_template = None
        self.variant_name = ""
        self.custom_values = [_blank_value(1)]

    # -- step 2 -------------------------------------------------------------

    def set_variant_name(self, name):
        self.variant_name = name

    def add_value(self):
        self.custom_values.append(_blank_value(len(self.custom_values) + 1))

    def remove_value(self, index):
        """Drop one row; the last remaining row can't be removed."""
        if len(self.custom_values) <= 1:
            raise WizardError("At least one value is required")
        del self.custom_values[index]

    def update_value(self, index, field, value):
        """Edit one field of one value row.

        A non-empty label always regenerates the value code, discarding any
        code typed by hand. Editing the code never touches the label.
        """
        if field not in VALUE_FIELDS:
            raise WizardError(f"Unknown value field: {field}")
        updated = {**self.custom_values[index], field: value}
        if field == "label" and value:
            updated["value"] = slugify_label(value)
        self.custom_values[index] = updated

    # -- step 3 -------------------------------------------------------------

    def set_price_adjustment(self, index, price):
        self.update_value(index, "price_adjustment", price)

    def set_stock_quantity(self, index, quantity):
        self.update_value(index, "stock_quantity", quantity)

    def apply_bulk_pricing(self, strategy, amount):
        self.custom_values = variant_templates.apply_bulk_pricing(
            self.custom_values, strategy, amount
        )

    # -- navigation ---------------------------------------------------------

    def step_errors(self, step=None):
        """Messages blocking the move past `step` (default: current step)."""
        if step is None:
            step = self.current_step
        errors = []

        if step == 1:
            if not self.selected_template and not self.custom_mode:
                errors.append("Choose a template or start a custom one")
        elif step == 2:
            if _is_blank(self.variant_name):
                errors.append("Variant group name is required")
            if not self.custom_values:
                errors.append("Add at least one value")
            for position, row in enumerate(self.custom_values, start=1):
                if _is_blank(row.get("label")):
                    errors.append(f"Value {position} requires a label")
                if _is_blank(row.get("value")):
                    errors.append(f"Value {position} requires a value code")
        elif step == 3:
            for position, row in enumerate(self.custom_values, start=1):
                if to_number(row.get("price_adjustment")) is None:
                    errors.append(f"Value {position} has an invalid price adjustment")
                stock = to_number(row.get("stock_quantity"))
                if stock is None or stock < 0:
                    errors.append(f"Value {position} has an invalid stock quantity")
        elif step != LAST_STEP:
            errors.append(f"No such step: {step}")

        return errors

    def can_proceed(self, step=None):
        return not self.step_errors(step)

    def next_step(self):
        if self.current_step >= LAST_STEP or not self.can_proceed():
            return False
        self.current_step += 1
        return True

    def previous_step(self):
        """Go back one step without re-checking; backing out of step 1 closes."""
        if self.current_step == 1:
            self.close()
        else:
            self.current_step -= 1

    # -- submission ---------------------------------------------------------

    def build_records(self):
        values = [
            {
                **row,
                "price_adjustment": _plain_number(to_number(row["price_adjustment"])),
                "stock_quantity": _plain_number(to_number(row["stock_quantity"])),
            }
            for row in self.custom_values
        ]
        return variant_templates.values_to_variants(
            values, self.product_id, self.variant_name.strip()
        )

    def submit(self, create_variant):
        if not self.is_open:
            raise WizardError("Wizard is not open")
        if self.current_step != LAST_STEP:
            raise WizardError("Variants can only be submitted from the confirm step")
        if self.is_submitting:
            raise WizardError("Submission already in progress")

        if not self.product_id or _is_blank(self.variant_name) or not self.custom_values:
            return SubmissionResult(False, "Missing required information")

        self.is_submitting = True
        try:
            saga = SubmissionSaga(self.build_records())
            self.last_submission = saga
            ok = saga.run(create_variant)
        finally:
            self.is_submitting = False

        total = len(saga.steps)
        created = len(saga.done)
        if not ok:
            failed = saga.failed_step
            return SubmissionResult(False, failed.error, created, total, failed)

        name = self.variant_name.strip()
        logger.info(
            "Created %d variants for group %r on product %s", total, name, self.product_id
        )
        self.close()
        return SubmissionResult(
            True, f'Created {total} variants for group "{name}"', created, total
        )
