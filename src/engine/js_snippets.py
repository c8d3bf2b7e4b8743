"""JavaScript snippets injected by the exploration engine.

Single source of truth for every script the engine runs through
``BrowserSession.evaluate``.  Scripts follow the WebDriver
``execute_script`` convention: they ``return`` a JSON-able value and
read positional arguments from ``arguments``.

None of these scripts know anything about a particular game.  They
look for generic DOM patterns (score counters, canvases, boards,
modal containers, consent banners, ad frames) and report what they
find; all decisions are taken on the Python side.

Every scan sweeps same-origin iframes as well as the top document.
Cross-origin frames throw on access and are skipped.
"""

# ---------------------------------------------------------------------------
# Shared helpers (prepended to the snippets that need them)
# ---------------------------------------------------------------------------

_HELPERS = """
var _docs = function() {
    var docs = [document];
    var frames = document.querySelectorAll('iframe');
    for (var i = 0; i < frames.length; i++) {
        try {
            var d = frames[i].contentDocument ||
                (frames[i].contentWindow && frames[i].contentWindow.document);
            if (d && d.body) { docs.push(d); }
        } catch (e) { /* cross-origin */ }
    }
    return docs;
};
var _query = function(sel) {
    var out = [];
    var docs = _docs();
    for (var i = 0; i < docs.length; i++) {
        var found = docs[i].querySelectorAll(sel);
        for (var j = 0; j < found.length; j++) { out.push(found[j]); }
    }
    return out;
};
var _visible = function(el) {
    if (!el || !el.getBoundingClientRect) { return false; }
    var view = (el.ownerDocument && el.ownerDocument.defaultView) || window;
    var style = view.getComputedStyle(el);
    if (style.display === 'none' || style.visibility === 'hidden' ||
            parseFloat(style.opacity) === 0) {
        return false;
    }
    var rect = el.getBoundingClientRect();
    return rect.width > 0 && rect.height > 0;
};
var _text = function(el) {
    var raw = el.textContent || el.innerText || el.value ||
        (el.getAttribute && el.getAttribute('aria-label')) || '';
    return String(raw).replace(/\\s+/g, ' ').trim().toLowerCase();
};
var _selector = function(el) {
    var sel = '';
    if (el.id) {
        var id = String(el.id).replace(/[^a-zA-Z0-9_-]/g, '');
        if (id) { sel = '#' + id; }
    } else if (el.className && typeof el.className === 'string') {
        var first = el.className.trim().split(/\\s+/)[0] || '';
        var cls = first.replace(/[^a-zA-Z0-9_-]/g, '');
        if (cls) { sel = '.' + cls; }
    }
    return /^[#.][a-zA-Z0-9_-]+$/.test(sel) ? sel : null;
};
var _inModal = function(el) {
    var parent = el.parentElement;
    for (var depth = 0; parent && depth < 5; depth++) {
        var view = (parent.ownerDocument && parent.ownerDocument.defaultView) || window;
        var style = view.getComputedStyle(parent);
        var bg = style.backgroundColor || '';
        var cls = (typeof parent.className === 'string' ? parent.className : '').toLowerCase();
        var pid = String(parent.id || '').toLowerCase();
        if (bg.indexOf('rgba(0, 0, 0') === 0 || bg === 'rgb(0, 0, 0)' ||
                cls.indexOf('modal') !== -1 || cls.indexOf('overlay') !== -1 ||
                cls.indexOf('dialog') !== -1 || pid.indexOf('modal') !== -1 ||
                (parseInt(style.zIndex, 10) || 0) > 1000 ||
                parseFloat(style.opacity) < 1) {
            return true;
        }
        parent = parent.parentElement;
    }
    return false;
};
var _describe = function(el) {
    var rect = el.getBoundingClientRect();
    var offX = 0, offY = 0;
    var view = el.ownerDocument && el.ownerDocument.defaultView;
    if (view && view.frameElement) {
        var frameRect = view.frameElement.getBoundingClientRect();
        offX = frameRect.left;
        offY = frameRect.top;
    }
    return {
        text: _text(el),
        tag: el.tagName.toLowerCase(),
        selector: _selector(el),
        x: offX + rect.left + rect.width / 2,
        y: offY + rect.top + rect.height / 2,
        width: rect.width,
        height: rect.height,
        inModal: _inModal(el)
    };
};
var _bodyText = function() {
    var docs = _docs();
    var text = '';
    for (var i = 0; i < docs.length; i++) {
        text += ' ' + (docs[i].body.innerText || docs[i].body.textContent || '');
    }
    return text.replace(/\\s+/g, ' ').toLowerCase();
};
var _hasAny = function(text, words) {
    for (var i = 0; i < words.length; i++) {
        if (text.indexOf(words[i]) !== -1) { return true; }
    }
    return false;
};
var _consentRoots = function() {
    return _query(
        '#onetrust-consent-sdk, #onetrust-banner-sdk, #CybotCookiebotDialog, ' +
        '#didomi-host, .qc-cmp2-container, #truste-consent-track, ' +
        '[class*="cookie" i], [id*="cookie" i], [class*="consent" i], ' +
        '[id*="consent" i], [class*="gdpr" i], [id*="gdpr" i]'
    ).filter(_visible);
};
"""

# ---------------------------------------------------------------------------
# State classification
# ---------------------------------------------------------------------------

# Raw signals for the state classifier.  Returns
# {activeScore, canvas: none|blank|content|webgl, boardContent,
#  tutorialModal, overlay: null|consent_gate|age_gate|ad|level_complete|
#  selection_menu|generic}.
CLASSIFY_SIGNALS_JS = (
    "return (function() {"
    + _HELPERS
    + """
    var result = {activeScore: false, canvas: 'none', boardContent: false,
                  tutorialModal: false, overlay: null};

    // 1. Score / counter elements with a non-default value
    var scores = _query('[class*="score" i], [id*="score" i], ' +
                        '[class*="counter" i], [id*="counter" i]');
    for (var i = 0; i < scores.length; i++) {
        var t = (scores[i].textContent || '').trim();
        if (t && t !== '0' && t !== 'Score: 0' && t !== '0 pts' && !/^0\\s*$/.test(t)) {
            result.activeScore = true;
            break;
        }
    }

    // 2. Canvas: sample alpha over up to 100x100 pixels
    var canvases = _query('canvas');
    for (var c = 0; c < canvases.length; c++) {
        var canvas = canvases[c];
        if (!(canvas.width > 0 && canvas.height > 0)) { continue; }
        if (result.canvas === 'none') { result.canvas = 'blank'; }
        try {
            var ctx = canvas.getContext('2d');
            if (!ctx) { result.canvas = 'webgl'; break; }
            var data = ctx.getImageData(0, 0, Math.min(canvas.width, 100),
                                        Math.min(canvas.height, 100)).data;
            for (var p = 3; p < data.length; p += 4) {
                if (data[p] > 0) { result.canvas = 'content'; break; }
            }
            if (result.canvas === 'content') { break; }
        } catch (e) {
            result.canvas = 'webgl';
            break;
        }
    }

    // 3. Boards, grids, tiles and cells with visible content
    var filled = function(el) {
        if (!_visible(el)) { return false; }
        var view = el.ownerDocument.defaultView || window;
        var bg = view.getComputedStyle(el).backgroundColor || '';
        var txt = (el.textContent || '').trim();
        var hasText = txt !== '' && txt !== '0';
        var hasColor = bg !== '' && bg !== 'rgba(0, 0, 0, 0)' && bg !== 'transparent' &&
            !/^rgba?\\(\\s*255\\s*,\\s*255\\s*,\\s*255/.test(bg);
        return hasText || hasColor;
    };
    var boards = _query('[class*="board" i], [id*="board" i], [class*="grid" i], ' +
                        '[id*="grid" i], [class*="game-container" i], [id*="game-container" i]');
    for (var b = 0; b < boards.length && !result.boardContent; b++) {
        var kids = boards[b].children || [];
        for (var k = 0; k < kids.length; k++) {
            if (filled(kids[k])) { result.boardContent = true; break; }
        }
    }
    if (!result.boardContent) {
        var tiles = _query('[class*="tile" i], [class*="cell" i], [class*="piece" i], [class*="block" i]');
        for (var m = 0; m < tiles.length; m++) {
            if (filled(tiles[m])) { result.boardContent = true; break; }
        }
    }

    // 4. Tutorial modal veto
    var modals = _query('[class*="modal" i], [class*="overlay" i], [class*="tutorial" i], ' +
                        '[class*="welcome" i], [class*="dialog" i], [role="dialog"]');
    var visibleModal = false;
    for (var n = 0; n < modals.length; n++) {
        if (!_visible(modals[n])) { continue; }
        visibleModal = true;
        var buttons = modals[n].querySelectorAll('button, [role="button"]');
        for (var q = 0; q < buttons.length; q++) {
            if (_hasAny(_text(buttons[q]), ['tutorial', 'welcome', 'how to play', 'learn'])) {
                result.tutorialModal = true;
                break;
            }
        }
        if (result.tutorialModal) { break; }
    }

    // Overlay kind, for blocked pages without gameplay signals
    var body = _bodyText();
    if (_consentRoots().length > 0) {
        result.overlay = 'consent_gate';
    } else if (_hasAny(body, ['are you 18', 'age verification', 'enter your age',
                              'confirm age', 'i am 18'])) {
        result.overlay = 'age_gate';
    } else if (_query('[class*="advert" i], [id*="advert" i], [class*="ad-overlay" i], ' +
                      '[id*="ad-container" i], [class*="ad-container" i]').filter(_visible).length) {
        result.overlay = 'ad';
    } else if (_hasAny(body, ['level complete', 'stage complete', 'you win', 'victory',
                              'next level'])) {
        result.overlay = 'level_complete';
    } else if (/(choose|select)\\s+(a\\s+|your\\s+)?(level|difficulty|character|mode)/.test(body)) {
        result.overlay = 'selection_menu';
    } else if (visibleModal) {
        result.overlay = 'generic';
    }
    return result;
})();
"""
)

# ---------------------------------------------------------------------------
# Overlay candidates and activation
# ---------------------------------------------------------------------------

# Visible controls that could dismiss an overlay.  Returns a list of
# {text, tag, selector, x, y, width, height, inModal}.  Texts longer than
# 40 characters are dropped; ranking happens in Python.
FIND_OVERLAY_CANDIDATES_JS = (
    "return (function() {"
    + _HELPERS
    + """
    var out = [];
    var seen = [];
    var els = _query('button, [role="button"], a, input[type="button"], ' +
                     'input[type="submit"], .close, [aria-label*="close" i], ' +
                     '[aria-label*="dismiss" i]');
    for (var i = 0; i < els.length; i++) {
        var el = els[i];
        if (seen.indexOf(el) !== -1 || !_visible(el)) { continue; }
        seen.push(el);
        var info = _describe(el);
        if (!info.text || info.text.length > 40) { continue; }
        out.push(info);
    }
    return out;
})();
"""
)

# Click the first visible control whose text matches arguments[0]
# (exact match when arguments[1] is true).  Returns a boolean.
CLICK_BY_TEXT_JS = (
    "var _sel_args = arguments;\n"
    "return (function(wanted, exact) {"
    + _HELPERS
    + """
    wanted = String(wanted).replace(/\\s+/g, ' ').trim().toLowerCase();
    var els = _query('button, [role="button"], a, input[type="button"], input[type="submit"]');
    for (var i = 0; i < els.length; i++) {
        var t = _text(els[i]);
        if (!_visible(els[i])) { continue; }
        if (exact ? t === wanted : t.indexOf(wanted) !== -1) {
            els[i].click();
            return true;
        }
    }
    return false;
})(_sel_args[0], _sel_args[1]);
"""
)

# Click whatever element sits at viewport point (arguments[0], arguments[1]).
ELEMENT_FROM_POINT_CLICK_JS = """
var _sel_args = arguments;
return (function(x, y) {
    var el = document.elementFromPoint(x, y);
    if (!el) { return false; }
    if (typeof el.click === 'function') {
        el.click();
    } else {
        el.dispatchEvent(new MouseEvent('click', {clientX: x, clientY: y, bubbles: true}));
    }
    return true;
})(_sel_args[0], _sel_args[1]);
"""

# Dispatch a full pointer sequence at a viewport point.  Canvas games
# often listen for mousedown/pointerdown rather than click.
DISPATCH_POINTER_CLICK_JS = """
var _sel_args = arguments;
return (function(x, y) {
    var target = document.elementFromPoint(x, y) || document.querySelector('canvas');
    if (!target) { return false; }
    var opts = {clientX: x, clientY: y, button: 0, bubbles: true, cancelable: true};
    var types = ['pointerdown', 'mousedown', 'pointerup', 'mouseup', 'click'];
    for (var i = 0; i < types.length; i++) {
        var Ctor = types[i].indexOf('pointer') === 0 && window.PointerEvent ?
            window.PointerEvent : MouseEvent;
        target.dispatchEvent(new Ctor(types[i], opts));
    }
    return true;
})(_sel_args[0], _sel_args[1]);
"""

# Bounding box of the element matching arguments[0], or null.
ELEMENT_BOUNDS_JS = """
var _sel_args = arguments;
return (function(selector) {
    var el = document.querySelector(selector);
    if (!el) { return null; }
    var r = el.getBoundingClientRect();
    return {x: r.left, y: r.top, width: r.width, height: r.height};
})(_sel_args[0]);
"""

VIEWPORT_SIZE_JS = """
return {width: window.innerWidth, height: window.innerHeight};
"""

# Give keyboard focus to the most likely game surface.
FOCUS_GAME_JS = """
return (function() {
    window.focus();
    var target = document.querySelector('canvas') ||
                 document.querySelector('[class*="game" i]') ||
                 document.querySelector('[id*="game" i]') ||
                 document.body;
    if (target && target !== document.body && !target.hasAttribute('tabindex')) {
        target.setAttribute('tabindex', '0');
    }
    if (target && typeof target.focus === 'function') { target.focus(); }
    return target ? target.tagName.toLowerCase() : null;
})();
"""

# A visible dialog asking the player to confirm something.
CONFIRMATION_DIALOG_JS = (
    "return (function() {"
    + _HELPERS
    + """
    var dialogs = _query('[class*="modal" i], [class*="dialog" i], [class*="confirm" i], [role="dialog"]');
    for (var i = 0; i < dialogs.length; i++) {
        if (!_visible(dialogs[i])) { continue; }
        var t = _text(dialogs[i]);
        if (_hasAny(t, ['sure', 'confirm', 'start new game'])) { return true; }
    }
    return false;
})();
"""
)

# ---------------------------------------------------------------------------
# Gatekeepers
# ---------------------------------------------------------------------------

# The largest iframe that plausibly hosts the game, or null.
FIND_GAME_IFRAME_JS = """
return (function() {
    var frames = document.querySelectorAll('iframe');
    var best = null;
    for (var i = 0; i < frames.length; i++) {
        var r = frames[i].getBoundingClientRect();
        if (r.width < 100 || r.height < 100) { continue; }
        var accessible = false, gameLike = false;
        try {
            var d = frames[i].contentDocument || frames[i].contentWindow.document;
            if (d) {
                accessible = true;
                gameLike = !!d.querySelector('canvas, [class*="game" i], [id*="game" i], ' +
                                             '[class*="board" i], [id*="board" i]');
            }
        } catch (e) { accessible = false; }
        var plausible = gameLike || (accessible && r.width > 400) ||
                        (!accessible && r.width > 400 && r.height > 400);
        if (!plausible) { continue; }
        var area = r.width * r.height;
        if (!best || area > best.area) {
            best = {index: i, x: r.left + r.width / 2, y: r.top + r.height / 2,
                    width: r.width, height: r.height, area: area, accessible: accessible};
        }
    }
    return best;
})();
"""

FOCUS_IFRAME_JS = """
var _sel_args = arguments;
return (function(index) {
    var frame = document.querySelectorAll('iframe')[index];
    if (!frame) { return false; }
    frame.scrollIntoView({block: 'center'});
    frame.focus();
    try { frame.contentWindow.focus(); } catch (e) { /* cross-origin */ }
    return true;
})(_sel_args[0]);
"""

# {visible, framework} for the cookie / GDPR banner on the page.
CONSENT_DETECT_JS = (
    "return (function() {"
    + _HELPERS
    + """
    var frameworks = [
        ['onetrust', '#onetrust-consent-sdk, #onetrust-banner-sdk'],
        ['cookiebot', '#CybotCookiebotDialog'],
        ['didomi', '#didomi-host, #didomi-popup'],
        ['quantcast', '.qc-cmp2-container, .qc-cmp-ui-container'],
        ['trustarc', '#truste-consent-track, .truste_box_overlay']
    ];
    for (var i = 0; i < frameworks.length; i++) {
        var hits = _query(frameworks[i][1]).filter(_visible);
        if (hits.length) { return {visible: true, framework: frameworks[i][0]}; }
    }
    return {visible: _consentRoots().length > 0, framework: null};
})();
"""
)

# Hide dimming filters that sit on top of consent dialogs.
CONSENT_HIDE_OVERLAYS_JS = """
return (function() {
    var filters = document.querySelectorAll(
        '.onetrust-pc-dark-filter, #CybotCookiebotDialogBodyUnderlay, ' +
        '.didomi-popup-backdrop, .qc-cmp2-backdrop, .truste_overlay'
    );
    for (var i = 0; i < filters.length; i++) { filters[i].style.display = 'none'; }
    return filters.length;
})();
"""

# Click the framework's own accept control (arguments[0] = framework).
CONSENT_FRAMEWORK_ACCEPT_JS = """
var _sel_args = arguments;
return (function(framework) {
    var selectors = {
        onetrust: '#onetrust-accept-btn-handler, .onetrust-close-btn-handler',
        cookiebot: '#CybotCookiebotDialogBodyLevelButtonLevelOptinAllowAll, ' +
                   '#CybotCookiebotDialogBodyButtonAccept',
        didomi: '#didomi-notice-agree-button',
        quantcast: '.qc-cmp2-summary-buttons button[mode="primary"]',
        trustarc: '#truste-consent-button, .call'
    };
    var sel = selectors[framework];
    var btn = sel ? document.querySelector(sel) : null;
    if (btn) {
        btn.click();
        return true;
    }
    try {
        if (framework === 'onetrust' && window.OneTrust) {
            if (window.OneTrust.AllowAll) { window.OneTrust.AllowAll(); }
            else { window.OneTrust.Close(); }
            return true;
        }
        if (framework === 'cookiebot' && window.Cookiebot && window.Cookiebot.submitCustomConsent) {
            window.Cookiebot.submitCustomConsent(true, true, true);
            return true;
        }
        if (framework === 'didomi' && window.Didomi && window.Didomi.setUserAgreeToAll) {
            window.Didomi.setUserAgreeToAll();
            return true;
        }
    } catch (e) { return false; }
    return false;
})(_sel_args[0]);
"""

# Buttons and links inside visible consent containers.
CONSENT_CANDIDATES_JS = (
    "return (function() {"
    + _HELPERS
    + """
    var out = [];
    var roots = _consentRoots();
    for (var i = 0; i < roots.length; i++) {
        var els = roots[i].querySelectorAll('button, [role="button"], a, input[type="button"], input[type="submit"]');
        for (var j = 0; j < els.length; j++) {
            if (!_visible(els[j])) { continue; }
            var info = _describe(els[j]);
            if (info.text && info.text.length <= 40) { out.push(info); }
        }
    }
    return out;
})();
"""
)

# Close controls inside ad-like containers.
AD_CLOSE_CANDIDATES_JS = (
    "return (function() {"
    + _HELPERS
    + """
    var out = [];
    var containers = _query('[class*="advert" i], [id*="advert" i], [class*="ad-" i], ' +
                            '[id*="ad-" i], [class*="banner" i], [class*="popup" i], ' +
                            '[id*="popup" i]').filter(_visible);
    for (var i = 0; i < containers.length; i++) {
        var els = containers[i].querySelectorAll('button, [role="button"], a, span, div');
        for (var j = 0; j < els.length; j++) {
            var el = els[j];
            if (!_visible(el)) { continue; }
            var t = _text(el);
            var label = String((el.getAttribute('aria-label') || '')).toLowerCase();
            if (t === 'x' || t === '\\u00d7' || t === 'close' || t === 'skip' ||
                    t === 'skip ad' || label.indexOf('close') !== -1) {
                var info = _describe(el);
                if (!info.text) { info.text = 'close'; }
                out.push(info);
            }
        }
    }
    return out;
})();
"""
)

# Listing-page signals: visible "play" wording and whether gameplay
# is already on screen.
LISTING_DETECT_JS = (
    "return (function() {"
    + _HELPERS
    + """
    var body = _bodyText();
    var playText = _hasAny(body, ['play game', 'play now', 'run game']);
    var gameplay = _query('canvas').filter(_visible).length > 0 &&
                   _query('.fg-click2play-stage, [class*="click2play" i]').filter(_visible).length === 0;
    return {playText: playText, hasGameplay: gameplay};
})();
"""
)

# Click a click-to-play stage element, as used by game portals.
LISTING_STAGE_CLICK_JS = """
return (function() {
    var stage = document.querySelector(
        '.fg-click2play-stage, [class*="click2play" i], [class*="play-overlay" i], ' +
        '.load-iframe-btn, #play-button, .play-button'
    );
    if (!stage) { return false; }
    stage.click();
    return true;
})();
"""

# A prominent play button (big, with a play icon or a green fill), or null.
LISTING_PLAY_BUTTON_JS = (
    "return (function() {"
    + _HELPERS
    + """
    var els = _query('button, a, [role="button"], div[class*="play" i], span[class*="play" i]');
    var best = null;
    for (var i = 0; i < els.length; i++) {
        var el = els[i];
        if (!_visible(el)) { continue; }
        var r = el.getBoundingClientRect();
        if (r.width < 50 || r.height < 50) { continue; }
        var view = el.ownerDocument.defaultView || window;
        var bg = view.getComputedStyle(el).backgroundColor || '';
        var m = bg.match(/rgba?\\((\\d+),\\s*(\\d+),\\s*(\\d+)/);
        var green = m && +m[2] > 150 && +m[2] > +m[1] + 40 && +m[2] > +m[3] + 40;
        var cls = (typeof el.className === 'string' ? el.className : '').toLowerCase();
        var icon = !!el.querySelector('svg') || cls.indexOf('play') !== -1;
        if (!(green || icon)) { continue; }
        var info = _describe(el);
        if (!best || info.width * info.height > best.width * best.height) { best = info; }
    }
    return best;
})();
"""
)

AGE_GATE_DETECT_JS = (
    "return (function() {"
    + _HELPERS
    + """
    return _hasAny(_bodyText(), ['are you 18', 'age verification', 'enter your age',
                                 'confirm age', 'i am 18']);
})();
"""
)

FULLSCREEN_CHECK_JS = """
return !!(document.fullscreenElement || document.webkitFullscreenElement);
"""

# Level / difficulty / character pickers.  Returns
# {consentVisible, isSelection, hasGameplay, options: [...]}.
SELECTION_SCREEN_JS = (
    "return (function() {"
    + _HELPERS
    + """
    var body = _bodyText();
    var result = {consentVisible: _consentRoots().length > 0, isSelection: false,
                  hasGameplay: false, options: []};
    result.isSelection = /(choose|select|pick)\\s+(a\\s+|your\\s+)?(level|difficulty|character|mode|speed)/.test(body);
    result.hasGameplay = _query('[class*="score" i], [id*="score" i]').filter(function(el) {
        var t = (el.textContent || '').trim();
        return _visible(el) && t && !/^(score:?\\s*)?0(\\s*pts)?$/i.test(t);
    }).length > 0;
    var names = ['slug', 'worm', 'python', 'easy', 'medium', 'hard', 'beginner',
                 'intermediate', 'advanced', 'expert', 'normal', 'casual', 'pro'];
    var els = _query('button, [role="button"], a, li, [class*="option" i], ' +
                     '[class*="level" i], [class*="difficulty" i]');
    var seen = {};
    for (var i = 0; i < els.length; i++) {
        if (!_visible(els[i])) { continue; }
        var t = _text(els[i]);
        if (!t || t.length > 30 || seen[t]) { continue; }
        var words = t.split(/[^a-z0-9]+/);
        var named = false;
        for (var w = 0; w < words.length; w++) {
            if (names.indexOf(words[w]) !== -1 || /^level\\s*\\d+$/.test(t)) { named = true; }
        }
        if (!named) { continue; }
        seen[t] = true;
        result.options.push(_describe(els[i]));
    }
    return result;
})();
"""
)

# ---------------------------------------------------------------------------
# Canvas games
# ---------------------------------------------------------------------------

# {hasCanvas, interactiveCount}: visible controls outside the canvas.
CANVAS_ONLY_JS = (
    "return (function() {"
    + _HELPERS
    + """
    var canvases = _query('canvas').filter(_visible);
    var controls = _query('button, [role="button"], input, select, textarea').filter(_visible);
    return {hasCanvas: canvases.length > 0, interactiveCount: controls.length};
})();
"""
)

# Bounding box of the largest visible canvas, or null.
CANVAS_BOUNDS_JS = """
return (function() {
    var canvases = document.querySelectorAll('canvas');
    var best = null;
    for (var i = 0; i < canvases.length; i++) {
        var r = canvases[i].getBoundingClientRect();
        if (r.width <= 0 || r.height <= 0) { continue; }
        if (!best || r.width * r.height > best.width * best.height) {
            best = {x: r.left, y: r.top, width: r.width, height: r.height};
        }
    }
    return best;
})();
"""

# ---------------------------------------------------------------------------
# Level navigation
# ---------------------------------------------------------------------------

# {levelComplete, buttons: [text, ...]} for level-complete screens.
LEVEL_COMPLETE_JS = (
    "return (function() {"
    + _HELPERS
    + """
    var body = _bodyText();
    var complete = _hasAny(body, ['level complete', 'stage complete', 'next level',
                                  'continue', 'proceed', 'level up', 'you win', 'victory']);
    var buttons = [];
    var els = _query('button, [role="button"], a');
    for (var i = 0; i < els.length; i++) {
        if (!_visible(els[i])) { continue; }
        var t = _text(els[i]);
        if (_hasAny(t, ['next level', 'continue', 'proceed', 'next', 'level 2',
                        'level 3', 'play again', 'restart'])) {
            buttons.push(t);
        }
    }
    return {levelComplete: complete || buttons.length > 0, buttons: buttons};
})();
"""
)
